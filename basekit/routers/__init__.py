"""
FastAPI routers exposed by basekit.

Each module exposes an APIRouter that create_app() includes. Handlers read
their collaborators (settings, upload service) from app.state and are the
only place where library errors become HTTP status codes.
"""
