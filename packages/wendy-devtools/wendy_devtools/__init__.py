"""Workspace readiness and debug session orchestration for WendyOS devices."""
