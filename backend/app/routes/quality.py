from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from backend.app.quality.learning import generate_translation_id
from backend.app.quality.types import UserValidation
from backend.app.translation.types import TranslationRequest, TranslationResult

router = APIRouter(prefix="/quality", tags=["quality"])


class ScoreBody(BaseModel):
    source_text: str
    translated_text: str
    from_lang: str
    to_lang: str
    provider: str = "cascade"
    confidence: float = 0.85


class ValidateBody(BaseModel):
    original_text: str
    translated_text: str
    from_lang: str
    to_lang: str


class FeedbackBody(BaseModel):
    source_text: str
    from_lang: str
    to_lang: str
    original_translation: str
    corrected_translation: str
    provider: str = "unknown"
    correction_reason: Literal["grammar", "vocabulary", "context", "cultural", "other"] | None = None
    correction_note: str | None = None
    is_native_speaker: bool = False


class AlternativesBody(BaseModel):
    source_text: str
    current_translation: str
    from_lang: str
    to_lang: str


class SettingsBody(BaseModel):
    min_confidence_threshold: int | None = None
    enable_auto_validation: bool | None = None
    enable_user_validation: bool | None = None
    show_alternatives: bool | None = None
    prioritize_native_validation: bool | None = None
    allow_learning_data_collection: bool | None = None


def _request_or_400(text: str, from_lang: str, to_lang: str) -> TranslationRequest:
    try:
        return TranslationRequest(text=text, from_lang=from_lang, to_lang=to_lang)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/score")
def score_translation(request: Request, body: ScoreBody) -> dict[str, Any]:
    scorer = request.app.state.quality_scorer
    translation_request = _request_or_400(body.source_text, body.from_lang, body.to_lang)
    result = TranslationResult.from_request(
        translation_request,
        translated_text=body.translated_text,
        confidence=body.confidence,
        translated_by=body.provider,
    )
    enhanced = scorer.enhance(result, body.source_text, body.from_lang, body.to_lang)
    return enhanced.to_dict()


@router.post("/validate")
def validate_translation(request: Request, body: ValidateBody) -> dict[str, Any]:
    validator = request.app.state.pipeline.validator
    _request_or_400(body.original_text, body.from_lang, body.to_lang)
    result = validator.validate(
        body.original_text, body.translated_text, body.from_lang, body.to_lang
    )
    return {"validation": result.to_dict(), "stats": validator.stats()}


@router.post("/feedback")
def submit_feedback(request: Request, body: FeedbackBody) -> dict[str, Any]:
    learning_store = request.app.state.learning_store
    _request_or_400(body.source_text, body.from_lang, body.to_lang)
    translation_id = generate_translation_id(body.source_text, body.from_lang, body.to_lang)
    validation = UserValidation(
        original_translation=body.original_translation,
        corrected_translation=body.corrected_translation,
        correction_reason=body.correction_reason,
        correction_note=body.correction_note,
        is_native_speaker=body.is_native_speaker,
    )
    try:
        feedback = learning_store.add_user_validation(
            translation_id,
            validation,
            source_text=body.source_text,
            source_lang=body.from_lang,
            target_lang=body.to_lang,
            translated_text=body.original_translation,
            provider=body.provider,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return feedback.to_dict()


@router.post("/alternatives")
def suggest_alternatives(request: Request, body: AlternativesBody) -> dict[str, Any]:
    learning_store = request.app.state.learning_store
    _request_or_400(body.source_text, body.from_lang, body.to_lang)
    alternatives = learning_store.suggest_alternatives(
        body.source_text, body.current_translation, body.from_lang, body.to_lang
    )
    return {"alternatives": alternatives, "count": len(alternatives)}


@router.get("/settings")
def get_quality_settings(request: Request) -> dict[str, Any]:
    return request.app.state.learning_store.get_settings().to_dict()


@router.put("/settings")
def update_quality_settings(request: Request, body: SettingsBody) -> dict[str, Any]:
    learning_store = request.app.state.learning_store
    try:
        updated = learning_store.update_settings(body.model_dump(exclude_none=True))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return updated.to_dict()


@router.get("/statistics")
def get_quality_statistics(request: Request) -> dict[str, Any]:
    learning_store = request.app.state.learning_store
    validator = request.app.state.pipeline.validator
    payload = learning_store.quality_statistics()
    payload["validations"] = validator.stats()
    payload["needs_review"] = [item.to_dict() for item in validator.needs_review()]
    return payload
