from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TipKind = Literal["good", "improve"]
SectionName = Literal["ATS", "toneAndStyle", "content", "structure", "skills"]

SECTION_KEYS: tuple[SectionName, ...] = ("ATS", "toneAndStyle", "content", "structure", "skills")
DEFAULT_SCORE = 50


class Tip(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: TipKind = Field(alias="type")
    tip: str = Field(max_length=500)
    explanation: str | None = Field(default=None, max_length=4000)


class FeedbackSection(BaseModel):
    score: int = Field(default=DEFAULT_SCORE, ge=0, le=100)
    tips: list[Tip] = Field(default_factory=list)


class FeedbackReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_score: int = Field(default=DEFAULT_SCORE, ge=0, le=100, alias="overallScore")
    ats: FeedbackSection = Field(default_factory=FeedbackSection, alias="ATS")
    tone_and_style: FeedbackSection = Field(default_factory=FeedbackSection, alias="toneAndStyle")
    content: FeedbackSection = Field(default_factory=FeedbackSection)
    structure: FeedbackSection = Field(default_factory=FeedbackSection)
    skills: FeedbackSection = Field(default_factory=FeedbackSection)

    def section(self, key: SectionName) -> FeedbackSection:
        return {
            "ATS": self.ats,
            "toneAndStyle": self.tone_and_style,
            "content": self.content,
            "structure": self.structure,
            "skills": self.skills,
        }[key]

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
