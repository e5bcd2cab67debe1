"""MCP stdio server for WendyOS devices and debug sessions."""
