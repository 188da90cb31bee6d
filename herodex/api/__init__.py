"""FastAPI routers rendering the HTML pages."""
