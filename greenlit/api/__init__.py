"""Greenlit HTTP API."""
