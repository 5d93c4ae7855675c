"""
Coda MCP Server

A Model Context Protocol (MCP) server and client library for the Coda API.
Enables AI assistants to read and edit Coda docs, tables, rows and pages.
"""

__version__ = "1.0.0"
