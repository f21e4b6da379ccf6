from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from backend.app.translation.languages import is_supported_language
from backend.app.translation.orchestrator import AllProvidersFailed, BatchTranslationFailed
from backend.app.translation.types import TranslationRequest

router = APIRouter(prefix="/translations", tags=["translations"])


class TranslateBody(BaseModel):
    text: str
    from_lang: str = "ko"
    to_lang: str = "en"
    include_quality: bool = True


class BatchTranslateBody(BaseModel):
    text: str
    from_lang: str = "ko"
    to_langs: list[str] = Field(default_factory=list)


@router.post("/translate")
async def translate_text(request: Request, body: TranslateBody) -> dict[str, Any]:
    orchestrator = request.app.state.translation_orchestrator
    scorer = request.app.state.quality_scorer

    try:
        translation_request = TranslationRequest(
            text=body.text.strip(), from_lang=body.from_lang, to_lang=body.to_lang
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        result = await orchestrator.translate_single(translation_request)
    except AllProvidersFailed as exc:
        raise HTTPException(
            status_code=502,
            detail={"error": "all_providers_failed", "attempts": exc.attempts},
        ) from exc

    if not body.include_quality:
        return result.to_dict()
    enhanced = scorer.enhance(
        result, translation_request.text, translation_request.from_lang, translation_request.to_lang
    )
    return enhanced.to_dict()


@router.post("/batch")
async def translate_batch(request: Request, body: BatchTranslateBody) -> dict[str, Any]:
    orchestrator = request.app.state.translation_orchestrator
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="text must not be empty")
    if not body.to_langs:
        raise HTTPException(status_code=400, detail="to_langs must not be empty")
    if not is_supported_language(body.from_lang):
        raise HTTPException(status_code=400, detail=f"unsupported language code: {body.from_lang}")

    try:
        batch = await orchestrator.translate_batch(body.text.strip(), body.from_lang, body.to_langs)
    except BatchTranslationFailed as exc:
        raise HTTPException(
            status_code=502,
            detail={"error": "batch_translation_failed", "failures": exc.failures},
        ) from exc
    return batch.to_dict()


@router.get("/status")
def get_translation_status(request: Request) -> dict[str, Any]:
    orchestrator = request.app.state.translation_orchestrator
    payload = orchestrator.snapshot()
    payload["stats"] = orchestrator.translation_stats()
    return payload


@router.get("/recent")
def get_recent_translations(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
) -> dict[str, Any]:
    orchestrator = request.app.state.translation_orchestrator
    results = orchestrator.recent_results(limit=limit)
    return {"results": results, "count": len(results)}


@router.get("/quota")
def get_quota_status(request: Request) -> dict[str, Any]:
    orchestrator = request.app.state.translation_orchestrator
    return {
        "quota": orchestrator.quota_status(),
        "summary": orchestrator.quota_status_text(),
        "available_providers": orchestrator.available_providers(),
    }
