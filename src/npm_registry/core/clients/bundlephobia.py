"""Bundlephobia API client.

API docs: https://github.com/pastelsky/bundlephobia#api
No authentication required. Builds can be slow for uncached packages.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ... import USER_AGENT

logger = logging.getLogger(__name__)

API_BASE = "https://bundlephobia.com/api"


async def fetch_bundle_size(package_name: str, version: str) -> Optional[dict]:
    """Fetch minified and gzipped size for ``package_name@version``.

    Returns ``{"size": int, "gzip": int}`` or None when bundlephobia has no answer.
    """
    params = {"package": f"{package_name}@{version}"}
    async with httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0)) as client:
        response = await client.get(
            f"{API_BASE}/size",
            params=params,
            headers={"User-Agent": USER_AGENT},
        )

    if not response.is_success:
        logger.debug("Bundlephobia has no data for %s@%s (HTTP %d)", package_name, version, response.status_code)
        return None

    data = response.json()
    if not isinstance(data, dict) or "size" not in data:
        return None
    return {"size": int(data.get("size") or 0), "gzip": int(data.get("gzip") or 0)}
