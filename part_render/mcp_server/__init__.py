"""
MCP server exposing fragment analysis and compilation as tools.
"""
