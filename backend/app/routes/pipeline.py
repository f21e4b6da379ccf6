from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from backend.app.pipeline.processor import PipelineBusyError
from backend.app.pipeline.types import WordSubmission

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


class ProcessBody(BaseModel):
    primary_text: str
    secondary_text: str
    primary_lang: str = "ko"
    secondary_lang: str = "en"


@router.post("/process")
async def process_word(request: Request, body: ProcessBody) -> dict[str, Any]:
    pipeline = request.app.state.pipeline
    try:
        submission = WordSubmission(
            primary_text=body.primary_text.strip(),
            secondary_text=body.secondary_text.strip(),
            primary_lang=body.primary_lang,
            secondary_lang=body.secondary_lang,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        result = await pipeline.process_word(submission)
    except PipelineBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return result.to_dict()


@router.post("/cancel")
def cancel_processing(request: Request) -> dict[str, Any]:
    pipeline = request.app.state.pipeline
    return {"cancel_requested": pipeline.cancel_processing()}


@router.get("/status")
def get_pipeline_status(request: Request) -> dict[str, Any]:
    return request.app.state.pipeline.snapshot()


class RetranslateBody(BaseModel):
    text: str
    from_lang: str = "en"
    to_lang: str


@router.post("/retranslate")
async def retranslate_language(request: Request, body: RetranslateBody) -> dict[str, Any]:
    pipeline = request.app.state.pipeline
    try:
        translation = await pipeline.retranslate_language(
            body.text.strip(), body.from_lang, body.to_lang
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if translation is None:
        raise HTTPException(status_code=502, detail="retranslation_failed")
    return {"language": body.to_lang, "translation": translation.to_dict()}
