"""TripShare Access Server - FastAPI Application Entry Point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripshare.config import settings
from tripshare.database import init_db
from tripshare.errors import register_error_handlers
from tripshare.services.rate_limiter import sweeper


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and rate-limit sweeper on startup."""
    init_db()
    sweeper.start()

    yield

    sweeper.stop()


app = FastAPI(
    title="TripShare Access",
    description="Trip-scoped invitations and access control for shared photo trips",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# --- Register API routers ---
from tripshare.api.invites import router as invites_router  # noqa: E402
from tripshare.api.trip_access import router as trip_access_router  # noqa: E402

API_PREFIX = "/api/v1"

app.include_router(invites_router, prefix=API_PREFIX)
app.include_router(trip_access_router, prefix=API_PREFIX)


@app.get("/")
def root():
    """Health check / server info."""
    return {
        "name": settings.server_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/api/v1/health")
def health():
    return {"status": "ok"}
