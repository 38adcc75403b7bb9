"""HTTP routers: JSON auth API, pages, health."""
