"""Resume analysis pipeline.

One run walks a fixed sequence of stages::

    converting -> uploading -> persisting_placeholder -> invoking
        -> normalizing -> validating -> persisting_final -> done

The record id is generated before anything is uploaded and is reused for the
placeholder write and the final write, so a run produces at most one record.
Failures before the placeholder commits leave nothing behind. A failed model
call leaves the placeholder in place with null feedback and is not retried.
Normalizing and validating never fail: malformed model output degrades to
the fallback report instead.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from resumate.ai.types import AIClient
from resumate.analysis.normalizer import NoJsonFound, normalize
from resumate.analysis.prompts import prepare_instructions
from resumate.analysis.rating import reconcile
from resumate.analysis.validator import DefaultedReport, ValidationOutcome, defaulted_report, validate
from resumate.core.object_store import StoredObject, object_path_for
from resumate.core.record_store import utc_now_iso
from resumate.core.security import AnalysisContext
from resumate.parsing.models import RasterImage
from resumate.schemas.resume import ResumeRecord

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    CONVERTING = "converting"
    UPLOADING = "uploading"
    PERSISTING_PLACEHOLDER = "persisting_placeholder"
    INVOKING = "invoking"
    NORMALIZING = "normalizing"
    VALIDATING = "validating"
    PERSISTING_FINAL = "persisting_final"
    DONE = "done"


STAGE_STATUS: dict[PipelineStage, str] = {
    PipelineStage.CONVERTING: "Converting PDF to image...",
    PipelineStage.UPLOADING: "Uploading resume...",
    PipelineStage.PERSISTING_PLACEHOLDER: "Saving initial resume data...",
    PipelineStage.INVOKING: "Analyzing with AI... This may take 10-30 seconds",
    PipelineStage.NORMALIZING: "Cleaning up AI response...",
    PipelineStage.VALIDATING: "Validating feedback...",
    PipelineStage.PERSISTING_FINAL: "Saving AI analysis results...",
    PipelineStage.DONE: "Analysis complete! Rating: {rating}/10",
}


class PipelineFailure(RuntimeError):
    def __init__(self, stage: PipelineStage, reason: str, *, record_id: str | None = None):
        super().__init__(reason)
        self.stage = stage
        self.reason = reason
        self.record_id = record_id

    def to_detail(self) -> dict[str, Any]:
        return {"stage": self.stage.value, "message": self.reason, "record_id": self.record_id}


class ConversionFailure(PipelineFailure):
    pass


class UploadFailure(PipelineFailure):
    pass


class PersistFailure(PipelineFailure):
    pass


class ModelInvocationFailure(PipelineFailure):
    pass


class DocumentConverter(Protocol):
    def convert(self, content: bytes, filename: str) -> RasterImage: ...


class ObjectStore(Protocol):
    def upload(self, data: bytes, path: str) -> StoredObject: ...

    def delete(self, path: str) -> bool: ...


class RecordRepository(Protocol):
    def upsert(self, record: dict[str, Any]) -> None: ...


StatusCallback = Callable[[PipelineStage, str], None]
RunLogger = Callable[..., None]


@dataclass
class AnalysisRequest:
    content: bytes
    file_name: str
    job_title: str
    job_description: str = ""
    company_name: str | None = None

    def __post_init__(self) -> None:
        self.job_title = (self.job_title or "").strip()
        if not self.job_title:
            raise ValueError("Please enter a job title.")
        self.job_description = (self.job_description or "").strip()
        self.company_name = (self.company_name or "").strip() or None
        self.file_name = (self.file_name or "").strip() or "resume.pdf"


@dataclass
class AnalysisResult:
    record: ResumeRecord
    outcome: ValidationOutcome
    status_history: list[str] = field(default_factory=list)

    @property
    def defaulted(self) -> bool:
        return isinstance(self.outcome, DefaultedReport)


def _log_analysis_run(**kwargs: Any) -> None:
    from resumate.analytics.db import log_ai_analysis_run

    try:
        log_ai_analysis_run(**kwargs)
    except Exception:  # pragma: no cover
        logger.debug("ai_run_logging_failed", exc_info=True)


class ResumeAnalysisPipeline:
    def __init__(
        self,
        *,
        converter: DocumentConverter,
        object_store: ObjectStore,
        record_store: RecordRepository,
        ai_client: AIClient,
        model_name: str = "unknown",
        status_callback: StatusCallback | None = None,
        run_logger: RunLogger | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._converter = converter
        self._object_store = object_store
        self._record_store = record_store
        self._ai_client = ai_client
        self._model_name = model_name
        self._status_callback = status_callback
        self._run_logger = run_logger or _log_analysis_run
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.status_history: list[str] = []

    def _report(self, stage: PipelineStage, **fmt: Any) -> None:
        status_text = STAGE_STATUS[stage].format(**fmt)
        self.status_history.append(status_text)
        logger.info("analysis_stage stage=%s", stage.value)
        if self._status_callback is not None:
            self._status_callback(stage, status_text)

    def _log_run(self, *, run_id: str, record_id: str, status: str, schema_valid: bool, started: float,
                 error_code: str | None = None) -> None:
        self._run_logger(
            run_id=run_id,
            record_id=record_id,
            model=self._model_name,
            schema_valid=schema_valid,
            status=status,
            error_code=error_code,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )

    async def _discard_upload(self, path: str) -> None:
        try:
            await asyncio.to_thread(self._object_store.delete, path)
        except Exception as exc:  # noqa: BLE001 - the placeholder failure is what gets reported
            logger.warning("analysis_orphan_cleanup_failed path=%s: %s", path, exc)

    async def run(self, request: AnalysisRequest, context: AnalysisContext) -> AnalysisResult:
        self.status_history = []
        record_id = self._id_factory()
        object_path = object_path_for(context.owner_id, record_id)

        self._report(PipelineStage.CONVERTING)
        try:
            image = await asyncio.to_thread(self._converter.convert, request.content, request.file_name)
        except Exception as exc:  # noqa: BLE001 - any converter error ends the run
            logger.warning("analysis_conversion_failed file=%s: %s", request.file_name, exc)
            raise ConversionFailure(PipelineStage.CONVERTING, f"Failed to convert document: {exc}") from exc

        self._report(PipelineStage.UPLOADING)
        try:
            stored = await asyncio.to_thread(self._object_store.upload, image.data, object_path)
        except Exception as exc:  # noqa: BLE001
            logger.warning("analysis_upload_failed path=%s: %s", object_path, exc)
            raise UploadFailure(PipelineStage.UPLOADING, "Failed to upload resume.") from exc

        now = utc_now_iso()
        placeholder: dict[str, Any] = {
            "id": record_id,
            "owner_id": context.owner_id,
            "file_name": request.file_name,
            "file_url": stored.url,
            "resume_path": stored.path,
            "company_name": request.company_name,
            "job_title": request.job_title,
            "job_description": request.job_description or None,
            "feedback": None,
            "rating": None,
            "created_at": now,
            "updated_at": now,
        }

        self._report(PipelineStage.PERSISTING_PLACEHOLDER)
        try:
            await asyncio.to_thread(self._record_store.upsert, placeholder)
        except Exception as exc:  # noqa: BLE001
            logger.warning("analysis_placeholder_failed record_id=%s: %s", record_id, exc)
            await self._discard_upload(stored.path)
            raise PersistFailure(
                PipelineStage.PERSISTING_PLACEHOLDER, "Failed to save initial resume data."
            ) from exc

        self._report(PipelineStage.INVOKING)
        run_id = uuid.uuid4().hex
        started = time.perf_counter()
        instructions = prepare_instructions(request.job_title, request.job_description)
        try:
            raw_text = await self._ai_client.generate(image, instructions)
        except Exception as exc:  # noqa: BLE001 - transport errors are surfaced, not retried
            logger.warning("analysis_model_failed record_id=%s: %s", record_id, exc)
            self._log_run(run_id=run_id, record_id=record_id, status="error", schema_valid=False,
                          started=started, error_code="llm_exception")
            raise ModelInvocationFailure(
                PipelineStage.INVOKING, "AI analysis failed. Please try again.", record_id=record_id
            ) from exc
        if not raw_text or not raw_text.strip():
            self._log_run(run_id=run_id, record_id=record_id, status="empty", schema_valid=False,
                          started=started, error_code="empty_response")
            raise ModelInvocationFailure(
                PipelineStage.INVOKING, "AI analysis returned no usable text.", record_id=record_id
            )
        logger.info("analysis_model_response record_id=%s length=%s", record_id, len(raw_text))

        self._report(PipelineStage.NORMALIZING)
        normalized: str | None
        try:
            normalized = normalize(raw_text)
        except NoJsonFound:
            logger.warning("analysis_no_json record_id=%s", record_id)
            normalized = None

        self._report(PipelineStage.VALIDATING)
        outcome = validate(normalized) if normalized is not None else defaulted_report("no_json_found")
        rating = reconcile(outcome.report)
        defaulted = isinstance(outcome, DefaultedReport)
        self._log_run(
            run_id=run_id,
            record_id=record_id,
            status="defaulted" if defaulted else "success",
            schema_valid=not defaulted,
            started=started,
            error_code=outcome.reason if defaulted else None,
        )

        final = {
            **placeholder,
            "feedback": outcome.report.to_payload(),
            "rating": rating,
            "updated_at": utc_now_iso(),
        }

        self._report(PipelineStage.PERSISTING_FINAL)
        try:
            await asyncio.to_thread(self._record_store.upsert, final)
        except Exception as exc:  # noqa: BLE001
            logger.warning("analysis_final_persist_failed record_id=%s: %s", record_id, exc)
            raise PersistFailure(
                PipelineStage.PERSISTING_FINAL, "Failed to save AI analysis results.", record_id=record_id
            ) from exc

        self._report(PipelineStage.DONE, rating=rating)
        record = ResumeRecord(**{**final, "feedback": outcome.report})
        return AnalysisResult(record=record, outcome=outcome, status_history=list(self.status_history))
