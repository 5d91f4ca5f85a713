"""npm Registry MCP Server.

FastMCP server with 10 read-only package analysis tools.
Run: npm-registry-mcp
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from .core import analysis
from .core.clients.registry import RegistryClient
from .core.config import RegistryConfig

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True)

registry = RegistryClient(RegistryConfig.from_env())


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Configure logging; close the shared registry client on shutdown."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logger.info("Using registry %s", registry.registry_url)
    try:
        yield
    finally:
        await registry.aclose()


mcp = FastMCP(
    "npm Registry",
    instructions="Ask your AI about npm packages — search, details, security advisories, peer dependency compatibility, version changes, quality scores, npx commands, bundle size, module and TypeScript capabilities and side-by-side package comparison. Read-only; nothing is installed or executed.",
    lifespan=lifespan,
)


# ─── Tool 1: Search ──────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def search_packages(query: str, limit: int = 10) -> dict:
    """Search npm packages, ranked by npm's quality, popularity and maintenance scores.

    Args:
        query: Search text. Examples: 'react state management', 'date formatting'.
        limit: Number of results, 1-50. Default 10.
    """
    return await analysis.search_packages({"query": query, "limit": limit}, registry)


# ─── Tool 2: Package Details ─────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def get_package_details(package_name: str, version: Optional[str] = None) -> dict:
    """Metadata, recent versions, dependencies, tarball info and weekly downloads.

    Args:
        package_name: npm package name. Examples: 'express', '@babel/core'.
        version: Exact version. Defaults to the latest release.
    """
    return await analysis.get_package_details({"package_name": package_name, "version": version}, registry)


# ─── Tool 3: Security ────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def audit_security(package_name: str, version: Optional[str] = None) -> dict:
    """Known security advisories for a package version, with a 0-100 security score.

    Args:
        package_name: npm package name.
        version: Exact version. Defaults to the latest release.
    """
    return await analysis.audit_security({"package_name": package_name, "version": version}, registry)


# ─── Tool 4: Compatibility ───────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def check_compatibility(
    package_name: str,
    existing_dependencies: dict[str, str],
    version: Optional[str] = None,
) -> dict:
    """Check a package's peer dependencies against the dependencies you already have.

    Args:
        package_name: npm package name to add.
        existing_dependencies: Installed packages and versions, e.g. {"react": "^18.2.0"}.
        version: Exact version to check. Defaults to the latest release.
    """
    return await analysis.check_compatibility(
        {"package_name": package_name, "version": version, "existing_dependencies": existing_dependencies},
        registry,
    )


# ─── Tool 5: Version Comparison ──────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def compare_versions(package_name: str, from_version: str, to_version: str) -> dict:
    """What changes between two versions: semver change type, dependency and peer dependency diffs.

    Args:
        package_name: npm package name.
        from_version: Current version, e.g. '4.17.0'.
        to_version: Target version, e.g. '5.0.0'.
    """
    return await analysis.compare_versions(
        {"package_name": package_name, "from_version": from_version, "to_version": to_version},
        registry,
    )


# ─── Tool 6: Quality ─────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def analyze_quality(package_name: str) -> dict:
    """Quality scores from downloads, release recency and GitHub activity.

    Args:
        package_name: npm package name.
    """
    return await analysis.analyze_quality({"package_name": package_name}, registry)


# ─── Tool 7: npx Command ─────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def analyze_npx_command(command: str, args: Optional[list[str]] = None, timeout: int = 30000) -> dict:
    """Review the package behind an npx command before running it. Never executes anything.

    Args:
        command: Package to run. Examples: 'create-react-app', 'cowsay@1.5.0', '@angular/cli@17.0.0'.
        args: Arguments that would be passed to the command.
        timeout: Intended execution timeout in milliseconds, 1000-60000. Default 30000.
    """
    return await analysis.analyze_npx_command(
        {"command": command, "args": args or [], "timeout": timeout},
        registry,
    )


# ─── Tool 8: Bundle Size ─────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def analyze_bundle_size(package_name: str, version: Optional[str] = None) -> dict:
    """Bundle size impact and tree-shaking support, using bundlephobia when available.

    Args:
        package_name: npm package name.
        version: Exact version. Defaults to the latest release.
    """
    return await analysis.analyze_bundle_size({"package_name": package_name, "version": version}, registry)


# ─── Tool 9: Capabilities ────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def analyze_capabilities(package_name: str, version: Optional[str] = None) -> dict:
    """Module format (ESM, CommonJS, dual), TypeScript types, platforms, exports and engines.

    Args:
        package_name: npm package name. Examples: 'vite', 'axios', '@types/node'.
        version: Exact version. Defaults to the latest release.
    """
    return await analysis.analyze_capabilities({"package_name": package_name, "version": version}, registry)


# ─── Tool 10: Package Comparison ─────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def compare_packages(packages: list[str]) -> dict:
    """Compare 2-5 packages on module format, types, platforms, popularity, maintenance and size.

    Args:
        packages: Package names. Example: ['axios', 'got', 'ky'].
    """
    return await analysis.compare_packages({"packages": packages}, registry)


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
