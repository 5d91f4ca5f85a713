"""npm security advisories bulk endpoint.

API docs: https://github.com/npm/registry/blob/main/docs/audit.md
No authentication required. Best-effort: the endpoint frequently answers
with an empty object, and callers treat any failure as "data unavailable".
"""

from __future__ import annotations

import logging

import httpx

from ... import USER_AGENT
from ..config import DEFAULT_REGISTRY_URL

logger = logging.getLogger(__name__)

ADVISORIES_PATH = "/-/npm/v1/security/advisories/bulk"


async def fetch_bulk_advisories(
    package_name: str,
    version: str,
    registry_url: str = DEFAULT_REGISTRY_URL,
) -> list[dict]:
    """Fetch advisories affecting one package version.

    Returns the advisory objects for ``package_name`` (possibly empty).
    Raises ``httpx.HTTPError`` when the endpoint cannot be reached; a
    non-2xx answer is treated as "no advisories".
    """
    url = f"{registry_url.rstrip('/')}{ADVISORIES_PATH}"
    async with httpx.AsyncClient(timeout=httpx.Timeout(20.0, connect=10.0)) as client:
        response = await client.post(
            url,
            json={package_name: [version]},
            headers={"Content-Type": "application/json", "User-Agent": USER_AGENT},
        )

    if not response.is_success:
        logger.debug("Advisory lookup for %s@%s returned HTTP %d", package_name, version, response.status_code)
        return []

    data = response.json()
    advisories = data.get(package_name, []) if isinstance(data, dict) else []
    if isinstance(advisories, dict):
        advisories = list(advisories.values())
    return [a for a in advisories if isinstance(a, dict)]
