"""Photo findings Pydantic models.

Per-photo analysis payloads arrive as loosely-typed JSON written by the
vision workers. These models are the validated view over that payload, with
one optional block per analysis source:

- detector: label detector (confidence 0-100)
- llm: vision LLM result (confidence 0-1)
- combined: summary merged by the vision worker
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class FindingsStatus(str, Enum):
    """Status of one analysis source for a photo."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


# =============================================================================
# DETECTOR
# =============================================================================


class DetectorLabel(BaseModel):
    """Label emitted by the object/label detector."""

    name: str
    confidence: float = Field(..., ge=0, le=100, description="Detector confidence (0-100)")


class DetectorResult(BaseModel):
    """Detector result block."""

    provider: Optional[str] = None
    model: Optional[str] = None
    labels: List[DetectorLabel] = Field(default_factory=list)

    @field_validator("labels", mode="before")
    @classmethod
    def coerce_null_labels(cls, v):
        return [] if v is None else v


class DetectorFindings(BaseModel):
    """Detector source for a photo."""

    status: FindingsStatus = FindingsStatus.PENDING
    result: Optional[DetectorResult] = None
    error: Optional[str] = None


# =============================================================================
# LLM
# =============================================================================


class ObservedObject(BaseModel):
    """Object seen by the vision LLM, optionally annotated."""

    name: str
    notes: Optional[str] = None

    @property
    def has_notes(self) -> bool:
        return bool(self.notes and self.notes.strip())


class LLMResult(BaseModel):
    """Vision LLM result block."""

    model: Optional[str] = None
    confidence: float = Field(..., ge=0, le=1)
    labels: List[str] = Field(default_factory=list)
    objects: List[ObservedObject] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    damage: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
    needs_more_photos: List[str] = Field(default_factory=list, alias="needsMorePhotos")

    @field_validator(
        "labels", "objects", "materials", "damage", "issues", "needs_more_photos",
        mode="before",
    )
    @classmethod
    def coerce_null_lists(cls, v):
        # The LLM emits null rather than omitting empty arrays
        return [] if v is None else v

    class Config:
        populate_by_name = True


class LLMFindings(BaseModel):
    """LLM source for a photo."""

    status: FindingsStatus = FindingsStatus.PENDING
    result: Optional[LLMResult] = None
    error: Optional[str] = None


# =============================================================================
# COMBINED
# =============================================================================


class CombinedFindings(BaseModel):
    """Summary block merged from the other sources by the vision worker."""

    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    summary_labels: List[str] = Field(default_factory=list, alias="summaryLabels")
    needs_more_photos: List[str] = Field(default_factory=list, alias="needsMorePhotos")
    damage: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)

    @field_validator(
        "summary_labels", "needs_more_photos", "damage", "issues", "materials",
        mode="before",
    )
    @classmethod
    def coerce_null_lists(cls, v):
        # The LLM emits null rather than omitting empty arrays
        return [] if v is None else v

    class Config:
        populate_by_name = True


# =============================================================================
# PHOTO FINDINGS
# =============================================================================


class PhotoFindings(BaseModel):
    """Validated findings payload for a single photo."""

    version: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    kind: Optional[str] = None
    detector: Optional[DetectorFindings] = None
    llm: Optional[LLMFindings] = None
    combined: Optional[CombinedFindings] = None

    class Config:
        populate_by_name = True

    @property
    def llm_result(self) -> Optional[LLMResult]:
        """LLM result block, if the LLM produced one."""
        if self.llm is None:
            return None
        return self.llm.result

    def detector_labels(self, min_confidence: float = 80.0) -> List[str]:
        """Detector label names scoring above ``min_confidence`` (0-100 scale)."""
        if self.detector is None or self.detector.result is None:
            return []
        return [
            label.name
            for label in self.detector.result.labels
            if label.confidence > min_confidence
        ]

    def confidences(self) -> List[float]:
        """Every per-source confidence scalar present on this photo."""
        values = []
        if self.llm_result is not None:
            values.append(self.llm_result.confidence)
        if self.combined is not None and self.combined.confidence is not None:
            values.append(self.combined.confidence)
        return values
