import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

from firesafe.api import advice, config, estimate, projects
from firesafe.db.session import get_engine
from firesafe.models import records  # noqa: F401  registers the tables on SQLModel.metadata

logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

app = FastAPI(title="FireSafe Estimator")

# CORS for frontend dev
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(estimate.router, prefix="/api", tags=["estimate"])
app.include_router(config.router, prefix="/api", tags=["config"])
app.include_router(projects.router, prefix="/api", tags=["projects"])
app.include_router(advice.router, prefix="/api", tags=["advice"])


@app.on_event("startup")
def on_startup():
    engine = get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ready")


@app.get("/")
async def root():
    return {"status": "ok", "service": "firesafe-estimator"}


@app.get("/api/health")
async def health():
    return {"status": "ok", "message": "FireSafe backend is active"}
