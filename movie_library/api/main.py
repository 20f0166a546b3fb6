from __future__ import annotations
import logging
import os

from sqlalchemy import text

from dotenv import load_dotenv

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.requests import Request
from contextlib import asynccontextmanager

from datetime import datetime, timezone

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from movie_library.db.database_session import engine
from movie_library.db.init_db import create_tables
from movie_library.errors import LibraryError
from movie_library.services.omdb_client import OmdbClient
from movie_library.api.routers import auth, library, reviews, movies


# _________________________________________________________________________________________________________
# API Endpoints
# _________________________________________________________________________________________________________

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan handler: runs once at startup and once at shutdown.
    Ensures that the DB tables exist and creates the shared OMDb client,
    which the routers receive through the get_omdb_client dependency.
    """
    create_tables()
    logger.info("[startup] Database tables ready")

    app.state.omdb_client = OmdbClient.from_env()
    if not app.state.omdb_client.api_key:
        logger.warning("[startup] OMDB_API_KEY not set, movie lookups will be unavailable")

    yield                                       # app runs while yielded
    logger.info("[shutdown] App shutting down")
    app.state.omdb_client.close()
    app.state.omdb_client = None


app = FastAPI(
    title="Movie Library API",
    description="Personal movie library: search movies, organize them in collections and rate and review them.",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include router endpoints
app.include_router(auth.router)
app.include_router(library.router)
app.include_router(reviews.router)
app.include_router(movies.router)


@app.get("/api/health", tags=["System"])
def health_check():
    """
    Lightweight healthcheck endpoint.
    Verifies connectivity to the database.
    Returns 200 OK if it is reachable, else 500.
    """
    status_report = {
        "service": "Movie Library API",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    # Check database connectivity
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        status_report["database"] = "reachable"
    except Exception as e:
        status_report["database"] = f"unreachable ({str(e)})"

    if status_report["database"] != "reachable":
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=status_report)

    status_report["status"] = "Healthy"
    return status_report


@app.exception_handler(LibraryError)
async def library_error_handler(_: Request, exc: LibraryError):
    '''
    Every time a service raises a domain error (validation, not found, conflict,
    upstream) Fast API routes it to this handler, which answers with the status
    code of the error.
    '''
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    '''
    Catches any other exception that wasn't explicitly handled and returns a 500 JSON response instead.
    '''
    logger.exception("Unhandled error in %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error."},
    )


@app.get("/metrics")
def metrics():
    """
    Prometheus scrape endpoint.
    Returns all registered metrics in Prometheus text format.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
