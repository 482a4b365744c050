"""API routers for Greenlit."""
