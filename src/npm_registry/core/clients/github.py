"""GitHub REST API client for repository health metrics.

API docs: https://docs.github.com/en/rest/repos/repos#get-a-repository
Rate limit: 60 requests/hour unauthenticated, 5000/hour with GITHUB_TOKEN.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from ... import USER_AGENT
from ..config import get_github_token
from ..models import GitHubMetrics

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"

_GITHUB_REPO_RE = re.compile(r"github\.com[/:]([^/]+)/([^/#?]+)")


def normalize_repository_url(url: str) -> str:
    """Turn npm's git URLs into browsable https URLs."""
    return (
        url.replace("git+", "")
        .replace("git://", "https://")
        .replace("git@github.com:", "https://github.com/")
        .replace("ssh://git@", "https://")
        .removesuffix(".git")
    )


def parse_github_repo(url: Optional[str]) -> Optional[tuple[str, str]]:
    """Extract ``(owner, repo)`` from a repository URL, or None if not on GitHub."""
    if not url:
        return None
    match = _GITHUB_REPO_RE.search(normalize_repository_url(url))
    if not match:
        return None
    return match.group(1), match.group(2).removesuffix(".git")


async def fetch_repo_metrics(owner: str, repo: str) -> GitHubMetrics:
    """Fetch stars, forks, issues and archive status for a repository."""
    headers = {"Accept": "application/vnd.github+json", "User-Agent": USER_AGENT}
    token = get_github_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    async with httpx.AsyncClient(timeout=httpx.Timeout(20.0, connect=10.0), headers=headers) as client:
        response = await client.get(f"{API_BASE}/repos/{owner}/{repo}")
        response.raise_for_status()
        data = response.json()

    return GitHubMetrics(
        stars=data.get("stargazers_count", 0),
        forks=data.get("forks_count", 0),
        watchers=data.get("watchers_count", 0),
        open_issues=data.get("open_issues_count", 0),
        last_push=data.get("pushed_at"),
        is_archived=data.get("archived", False),
        has_issues=data.get("has_issues", True),
        default_branch=data.get("default_branch"),
    )
