"""Search and AI services behind the HTTP routes."""
