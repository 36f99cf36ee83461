"""
Vision Signal Aggregator.

Merges per-photo findings into one canonical VisionContext. Each photo's
opaque findings payload is validated into PhotoFindings at this boundary,
one source block at a time: an invalid detector, llm or combined block is
dropped on its own and the photo keeps its other sources.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Set, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from models.draft import PhotoInput
from models.findings import (
    CombinedFindings,
    DetectorFindings,
    LLMFindings,
    ObservedObject,
    PhotoFindings,
)

logger = structlog.get_logger(__name__)

DETECTOR_LABEL_MIN_CONFIDENCE = 80.0
DEFAULT_AVG_CONFIDENCE = 0.5

FINDINGS_SOURCES = {
    "detector": DetectorFindings,
    "llm": LLMFindings,
    "combined": CombinedFindings,
}


@dataclass
class VisionContext:
    """Signals aggregated across every photo of a job."""

    damage: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    materials: List[str] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    objects: List[ObservedObject] = field(default_factory=list)
    needs_more_photos: List[str] = field(default_factory=list)
    avg_confidence: float = DEFAULT_AVG_CONFIDENCE
    photos_with_findings: int = 0

    @property
    def has_detected_issues(self) -> bool:
        return bool(self.damage or self.issues)


def parse_photo_findings(raw: Any) -> Optional[PhotoFindings]:
    """Validate a raw findings payload source by source.

    Returns:
        PhotoFindings holding every valid source block, or None when the
        payload is absent, not a mapping, or none of its source blocks is valid.
    """
    if raw is None:
        return None
    if isinstance(raw, PhotoFindings):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning("vision_findings_invalid", reason="not_a_mapping", type=type(raw).__name__)
        return None

    payload = dict(raw)
    sources = {}
    rejected = []
    for source, model in FINDINGS_SOURCES.items():
        block = payload.pop(source, None)
        if block is None:
            continue
        try:
            sources[source] = model.model_validate(block)
        except PydanticValidationError as e:
            rejected.append(source)
            logger.warning(
                "vision_findings_invalid",
                reason="validation_failed",
                source=source,
                errors=e.error_count(),
            )

    if rejected and not sources:
        return None

    try:
        return PhotoFindings.model_validate({**payload, **sources})
    except PydanticValidationError as e:
        logger.warning(
            "vision_findings_invalid",
            reason="validation_failed",
            source="envelope",
            errors=e.error_count(),
        )
        return None


def _clean(values: Iterable[str]) -> List[str]:
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def _append_unique(target: List[str], seen: Set[str], values: Iterable[str]) -> None:
    for value in values:
        if value not in seen:
            seen.add(value)
            target.append(value)


def extract_vision_context(photos: List[PhotoInput]) -> VisionContext:
    """Aggregate findings across photos into a VisionContext.

    damage, issues, materials and labels are sorted so the result does not
    depend on photo order. Objects and needs-more-photos hints keep
    first-seen order.
    """
    damage: Set[str] = set()
    issues: Set[str] = set()
    materials: Set[str] = set()
    labels: Set[str] = set()

    objects: List[ObservedObject] = []
    seen_objects: Set[Tuple[str, str]] = set()
    needs_more_photos: List[str] = []
    seen_hints: Set[str] = set()
    confidences: List[float] = []
    photos_with_findings = 0

    for photo in photos:
        findings = parse_photo_findings(photo.findings)
        if findings is None:
            continue
        photos_with_findings += 1

        llm = findings.llm_result
        if llm is not None:
            damage.update(_clean(llm.damage))
            issues.update(_clean(llm.issues))
            materials.update(_clean(llm.materials))
            labels.update(_clean(llm.labels))
            _append_unique(needs_more_photos, seen_hints, _clean(llm.needs_more_photos))

            for obj in llm.objects:
                if not obj.has_notes:
                    continue
                key = (obj.name.strip(), obj.notes.strip())
                if key in seen_objects:
                    continue
                seen_objects.add(key)
                objects.append(ObservedObject(name=key[0], notes=key[1]))

        combined = findings.combined
        if combined is not None:
            damage.update(_clean(combined.damage))
            issues.update(_clean(combined.issues))
            materials.update(_clean(combined.materials))
            labels.update(_clean(combined.summary_labels))
            _append_unique(needs_more_photos, seen_hints, _clean(combined.needs_more_photos))

        labels.update(_clean(findings.detector_labels(DETECTOR_LABEL_MIN_CONFIDENCE)))
        confidences.extend(findings.confidences())

    avg_confidence = (
        sum(confidences) / len(confidences) if confidences else DEFAULT_AVG_CONFIDENCE
    )

    context = VisionContext(
        damage=sorted(damage),
        issues=sorted(issues),
        materials=sorted(materials),
        labels=sorted(labels),
        objects=objects,
        needs_more_photos=needs_more_photos,
        avg_confidence=avg_confidence,
        photos_with_findings=photos_with_findings,
    )

    logger.debug(
        "vision_context_extracted",
        photos=len(photos),
        photos_with_findings=photos_with_findings,
        damage=len(context.damage),
        issues=len(context.issues),
        labels=len(context.labels),
        avg_confidence=round(avg_confidence, 3),
    )
    return context
