"""HTTP Layer: FastAPI routers, dependencies and error handlers."""
