from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.logging_config import configure_logging
from backend.app.pipeline.collaborators import (
    PexelsImageSearch,
    VoiceRegistry,
    build_voice_catalog,
)
from backend.app.pipeline.processor import MultiLangPipeline
from backend.app.quality.learning import LearningStore
from backend.app.quality.scorer import QualityScorer
from backend.app.quality.validator import TranslationValidator
from backend.app.routes.health import router as health_router
from backend.app.routes.pipeline import router as pipeline_router
from backend.app.routes.quality import router as quality_router
from backend.app.routes.translations import router as translations_router
from backend.app.settings import build_settings
from backend.app.storage.store import build_state_store
from backend.app.translation.orchestrator import TranslationOrchestrator
from backend.app.translation.providers.cascade import ZeroCostCascade
from backend.app.translation.providers.google import GoogleTranslationProvider
from backend.app.translation.providers.microsoft import MicrosoftTranslationProvider
from backend.app.translation.providers.papago import PapagoTranslationProvider
from backend.app.translation.quota import QuotaLedger


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _service_logger() -> logging.Logger:
    return logging.getLogger("lexibridge.backend")


def create_app() -> FastAPI:
    settings = build_settings(_project_root())
    configure_logging(settings.log_level)
    logger = _service_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.started_at = datetime.now(timezone.utc)
        app.state.state_store = build_state_store(
            settings.state_store_mode, settings.state_store_path
        )
        app.state.quota_ledger = QuotaLedger(
            settings=settings, store=app.state.state_store, logger=logger
        )
        app.state.cascade = ZeroCostCascade(settings=settings, logger=logger)
        app.state.translation_orchestrator = TranslationOrchestrator(
            settings=settings,
            logger=logger,
            quota_ledger=app.state.quota_ledger,
            providers=[
                app.state.cascade,
                MicrosoftTranslationProvider(settings),
                GoogleTranslationProvider(settings),
                PapagoTranslationProvider(settings),
            ],
        )
        app.state.learning_store = LearningStore(
            settings=settings, store=app.state.state_store, logger=logger
        )
        app.state.quality_scorer = QualityScorer(
            settings=settings, logger=logger, learning_store=app.state.learning_store
        )
        app.state.pipeline = MultiLangPipeline(
            settings=settings,
            logger=logger,
            orchestrator=app.state.translation_orchestrator,
            scorer=app.state.quality_scorer,
            image_search=PexelsImageSearch(settings),
            voices=VoiceRegistry(build_voice_catalog(settings), settings, logger),
            validator=TranslationValidator(),
        )

        logger.info(
            "service_startup",
            extra={
                "event": "startup",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )
        logger.info(
            "service_config_loaded",
            extra={
                "event": "config_loaded",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
                "config": settings.redacted(),
            },
        )
        yield
        app.state.pipeline.cancel_processing()
        logger.info(
            "service_shutdown",
            extra={
                "event": "shutdown",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )

    app = FastAPI(
        title=settings.service_name,
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "Lexibridge translation backend is running."}

    app.include_router(health_router)
    app.include_router(translations_router)
    app.include_router(quality_router)
    app.include_router(pipeline_router)
    return app


app = create_app()
