# backend/formadb/main.py
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List

from alembic.config import Config
from alembic.script import ScriptDirectory
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from .apps.documents.router import router as documents_router
from .apps.signatures import storage as signature_storage
from .apps.signatures.router import router as signatures_router
from .apps.trainings.router import router as trainings_router
from .database import WriteSessionLocal

logging.basicConfig(level=os.getenv("LOG_LEVEL", "info").upper())
logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parent / "alembic.ini"


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:8080",
    ]


def _enforce_schema_head_sync_if_configured() -> None:
    """
    With SCHEMA_STRICT on, refuse to start unless the database sits at the
    migration head(s).
    """
    if os.getenv("SCHEMA_STRICT", "0").strip().lower() not in {"1", "true", "yes", "on"}:
        return

    heads = set(ScriptDirectory.from_config(Config(str(ALEMBIC_INI))).get_heads())
    db = WriteSessionLocal()
    try:
        current = {row[0] for row in db.execute(text("SELECT version_num FROM alembic_version")).fetchall()}
    finally:
        db.close()

    if current != heads:
        raise RuntimeError(
            f"Database schema at {sorted(current)} but migrations head is {sorted(heads)}; "
            "run 'alembic -c formadb/alembic.ini upgrade head'."
        )
    logger.info("Schema preflight passed", extra={"heads": sorted(heads)})


@asynccontextmanager
async def lifespan(_app: FastAPI):
    _enforce_schema_head_sync_if_configured()
    yield


app = FastAPI(title="Formation Documents API", version="1.0.0", lifespan=lifespan)
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Local signature images are served from the public base path.
if signature_storage.STORAGE_BACKEND == "local" and signature_storage.PUBLIC_BASE_URL.startswith("/"):
    app.mount(
        signature_storage.PUBLIC_BASE_URL.rstrip("/"),
        StaticFiles(directory=signature_storage.STORAGE_PATH, check_dir=False),
        name="signatures",
    )


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Formation documents backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(trainings_router)
app.include_router(documents_router)
app.include_router(signatures_router)
