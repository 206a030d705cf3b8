from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from resumate.schemas.feedback import FeedbackReport

ALLOWED_RESUME_EXTENSIONS = {"pdf", "png", "jpg", "jpeg", "webp"}


class ResumeRecord(BaseModel):
    id: str
    owner_id: str
    file_name: str
    file_url: str
    resume_path: str
    company_name: str | None = None
    job_title: str
    job_description: str | None = None
    feedback: FeedbackReport | None = None
    rating: int | None = Field(default=None, ge=1, le=10)
    created_at: datetime
    updated_at: datetime


class AnalysisResponse(BaseModel):
    record: ResumeRecord
    status_history: list[str] = Field(default_factory=list)
    defaulted: bool = False


class ResumeListResponse(BaseModel):
    resumes: list[ResumeRecord]


class FeedbackViewResponse(BaseModel):
    id: str
    rating: int | None = None
    feedback: FeedbackReport | None = None
    narrative: str = ""
    raw: str | None = None


class WipeResponse(BaseModel):
    records_deleted: int = Field(ge=0)
    objects_deleted: int = Field(ge=0)
