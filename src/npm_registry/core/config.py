"""Registry client configuration.

All settings are optional. ``RegistryConfig.from_env()`` lets the server be
pointed at a mirror or tuned without code changes.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_DOWNLOADS_URL = "https://api.npmjs.org"


class RegistryConfig(BaseModel):
    """Settings for one ``RegistryClient``. Durations are in seconds."""

    registry_url: str = DEFAULT_REGISTRY_URL
    downloads_url: str = DEFAULT_DOWNLOADS_URL
    timeout: float = Field(10.0, gt=0, description="Per-attempt deadline")
    max_retries: int = Field(3, ge=0, description="Retries after the first attempt")
    base_delay: float = Field(1.0, ge=0, description="Backoff base, doubled per retry")
    jitter: float = Field(1.0, ge=0, description="Upper bound of the random delay added to each backoff")
    cache_max_size: int = Field(500, ge=1)
    cache_ttl: float = Field(300.0, gt=0)
    max_concurrent: int = Field(10, ge=1, description="In-flight requests shared by all operations")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "RegistryConfig":
        env = os.environ if environ is None else environ
        overrides: dict = {}
        mapping = {
            "NPM_REGISTRY_URL": "registry_url",
            "NPM_DOWNLOADS_URL": "downloads_url",
            "NPM_REGISTRY_TIMEOUT": "timeout",
            "NPM_REGISTRY_MAX_RETRIES": "max_retries",
            "NPM_CACHE_MAX_SIZE": "cache_max_size",
            "NPM_CACHE_TTL": "cache_ttl",
            "NPM_MAX_CONCURRENT": "max_concurrent",
        }
        for env_key, field in mapping.items():
            value = env.get(env_key, "")
            if value:
                overrides[field] = value
        return cls(**overrides)


def get_github_token() -> str:
    """Optional token; only raises the GitHub API rate limit."""
    return os.environ.get("GITHUB_TOKEN", "")
