"""
Coda API operations exposed as MCP tools and CLI commands.
"""
