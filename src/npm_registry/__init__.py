"""npm Registry MCP Server.

Ask your AI about npm packages — search, details, security, compatibility and quality.
Cached, rate-limited access to the public npm registry and download statistics.
"""

__version__ = "1.0.0"

USER_AGENT = f"npm-registry-mcp/{__version__}"
