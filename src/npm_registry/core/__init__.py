"""Core business logic — registry access, scoring, analysis and data models.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or any server framework. The FastMCP server in ``npm_registry.server``
is a thin layer over the analysis functions defined here.
"""
