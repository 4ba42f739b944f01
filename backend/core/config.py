import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.settings import get_settings


def configure_logging(level: str | None = None) -> None:
    level_name = level or get_settings().logging.level
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def apply_cors(app: FastAPI):
    # Lokálny dev frontend
    default_origins = [
        "http://localhost:5173",
    ]

    # Ak je nastavená premenná CORS_ALLOW_ORIGINS, použijeme ju, inak default
    origins = os.getenv("CORS_ALLOW_ORIGINS")
    if origins:
        allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]
    else:
        allowed_origins = default_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
