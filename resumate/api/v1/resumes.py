import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from resumate.ai.factory import get_ai_client, model_name
from resumate.analysis.presenter import present, raw_display, render_narrative
from resumate.core.config import settings
from resumate.core.object_store import get_object_store
from resumate.core.rate_limit import rate_limit
from resumate.core.record_store import get_record_store
from resumate.core.security import AnalysisContext, require_context
from resumate.parsing.convert import DocumentConverter
from resumate.schemas.resume import (
    ALLOWED_RESUME_EXTENSIONS,
    AnalysisResponse,
    FeedbackViewResponse,
    ResumeListResponse,
    ResumeRecord,
    WipeResponse,
)
from resumate.services.analysis_service import (
    AnalysisRequest,
    ConversionFailure,
    ModelInvocationFailure,
    PipelineFailure,
    PipelineStage,
    ResumeAnalysisPipeline,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _max_upload_bytes() -> int:
    return settings.max_upload_mb * 1024 * 1024


def _sse_event(event: str, payload: dict[str, Any]) -> str:
    data = json.dumps(payload, ensure_ascii=False)
    return f"event: {event}\ndata: {data}\n\n"


def _failure_status(exc: PipelineFailure) -> int:
    if isinstance(exc, ConversionFailure):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ModelInvocationFailure):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_503_SERVICE_UNAVAILABLE


async def _read_upload(file: UploadFile) -> tuple[str, bytes]:
    filename = file.filename or "resume.pdf"
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_RESUME_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '.{ext}'. Allowed: {', '.join(sorted(ALLOWED_RESUME_EXTENSIONS))}.",
        )

    limit = _max_upload_bytes()
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(1024 * 64)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {settings.max_upload_mb} MB.",
            )
        chunks.append(chunk)
    return filename, b"".join(chunks)


def _build_request(filename: str, content: bytes, job_title: str, job_description: str | None,
                   company_name: str | None) -> AnalysisRequest:
    try:
        return AnalysisRequest(
            content=content,
            file_name=filename,
            job_title=job_title,
            job_description=job_description or "",
            company_name=company_name,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _build_pipeline(status_callback=None) -> ResumeAnalysisPipeline:
    try:
        ai_client = get_ai_client()
    except (RuntimeError, ValueError) as exc:
        logger.warning("ai_client_unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI analysis is not configured.",
        ) from exc
    return ResumeAnalysisPipeline(
        converter=DocumentConverter(),
        object_store=get_object_store(),
        record_store=get_record_store(),
        ai_client=ai_client,
        model_name=model_name(),
        status_callback=status_callback,
    )


def _record_from_row(row: dict[str, Any]) -> ResumeRecord:
    return ResumeRecord(**{**row, "feedback": present(row.get("feedback"))})


def _owned_row(record_id: str, context: AnalysisContext) -> dict[str, Any]:
    row = get_record_store().get(record_id)
    if row is None or row["owner_id"] != context.owner_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found.")
    return row


@router.post("/resumes/analyze", response_model=AnalysisResponse)
@rate_limit()
async def analyze_resume(
    request: Request,
    file: UploadFile = File(...),
    job_title: str = Form(...),
    job_description: str | None = Form(default=None),
    company_name: str | None = Form(default=None),
    context: AnalysisContext = Depends(require_context),
):
    _ = request
    filename, content = await _read_upload(file)
    analysis_request = _build_request(filename, content, job_title, job_description, company_name)
    pipeline = _build_pipeline()
    try:
        result = await pipeline.run(analysis_request, context)
    except PipelineFailure as exc:
        raise HTTPException(status_code=_failure_status(exc), detail=exc.to_detail()) from exc
    return AnalysisResponse(record=result.record, status_history=result.status_history, defaulted=result.defaulted)


@router.post("/resumes/analyze/stream")
@rate_limit()
async def analyze_resume_stream(
    request: Request,
    file: UploadFile = File(...),
    job_title: str = Form(...),
    job_description: str | None = Form(default=None),
    company_name: str | None = Form(default=None),
    context: AnalysisContext = Depends(require_context),
):
    filename, content = await _read_upload(file)
    analysis_request = _build_request(filename, content, job_title, job_description, company_name)
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def push_status(stage: PipelineStage, text: str) -> None:
        queue.put_nowait({"kind": "status", "payload": {"stage": stage.value, "status": text}})

    pipeline = _build_pipeline(status_callback=push_status)

    async def runner() -> None:
        try:
            result = await pipeline.run(analysis_request, context)
            response = AnalysisResponse(
                record=result.record, status_history=result.status_history, defaulted=result.defaulted
            )
            queue.put_nowait({"kind": "result", "payload": response.model_dump(mode="json", by_alias=True)})
        except PipelineFailure as exc:
            queue.put_nowait({"kind": "error", "payload": {**exc.to_detail(), "status": _failure_status(exc)}})
        except Exception as exc:  # pragma: no cover - guard rail
            logger.exception("analysis_stream_failed")
            queue.put_nowait(
                {
                    "kind": "error",
                    "payload": {"stage": None, "message": str(exc), "status": status.HTTP_500_INTERNAL_SERVER_ERROR},
                }
            )
        finally:
            queue.put_nowait({"kind": "done", "payload": {}})

    async def event_stream():
        task = asyncio.create_task(runner())
        try:
            while True:
                if await request.is_disconnected():
                    break
                event = await queue.get()
                kind = event.get("kind")
                if kind == "done":
                    break
                yield _sse_event(kind, event.get("payload", {}))
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/resumes", response_model=ResumeListResponse)
def list_resumes(context: AnalysisContext = Depends(require_context)):
    rows = get_record_store().list_by_owner(context.owner_id)
    return ResumeListResponse(resumes=[_record_from_row(row) for row in rows])


@router.get("/resumes/{record_id}", response_model=ResumeRecord)
def get_resume(record_id: str, context: AnalysisContext = Depends(require_context)):
    return _record_from_row(_owned_row(record_id, context))


@router.get("/resumes/{record_id}/feedback", response_model=FeedbackViewResponse)
def get_resume_feedback(record_id: str, context: AnalysisContext = Depends(require_context)):
    row = _owned_row(record_id, context)
    stored = row.get("feedback")
    report = present(stored)
    return FeedbackViewResponse(
        id=row["id"],
        rating=row.get("rating"),
        feedback=report,
        narrative=render_narrative(report) if report is not None else "",
        raw=None if report is not None else raw_display(stored),
    )


@router.delete("/resumes", response_model=WipeResponse)
def wipe_resumes(context: AnalysisContext = Depends(require_context)):
    records_deleted = get_record_store().delete_by_owner(context.owner_id)
    objects_deleted = get_object_store().delete_prefix(f"resumes/{context.owner_id}")
    logger.info(
        "resumes_wiped owner=%s records=%s objects=%s",
        context.owner_id,
        records_deleted,
        objects_deleted,
    )
    return WipeResponse(records_deleted=records_deleted, objects_deleted=objects_deleted)
