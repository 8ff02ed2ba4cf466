"""FastAPI application entry point."""
from __future__ import annotations
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import LOG_FORMAT, LOG_LEVEL
from app.persistence.db import init_db
from app.api import auth, collaborators, entities, stats

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# App creation
# ------------------------------------------------------------------
app = FastAPI(
    title="Curriculum Lifecycle API",
    description="Versioned lifecycle engine for courses and degrees",
    version="1.0.0",
)

# CORS — allow everything for local dev (restrict for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------
# Startup: initialise DB schema
# ------------------------------------------------------------------
@app.on_event("startup")
def on_startup():
    init_db()


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "InternalError", "message": "Internal server error"}},
    )


# ------------------------------------------------------------------
# Routers: fixed paths before the /{kind} catch-alls
# ------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(stats.router)
app.include_router(entities.router)
app.include_router(collaborators.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=False)
