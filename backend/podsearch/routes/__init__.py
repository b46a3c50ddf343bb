"""HTTP routers: health, search and metrics."""
