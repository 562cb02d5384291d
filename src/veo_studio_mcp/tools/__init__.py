"""FastMCP sub-servers."""
