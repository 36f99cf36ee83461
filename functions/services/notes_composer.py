"""
Notes Composer.

Builds the free-text notes handed to the scope enhancer from contractor
notes and aggregated vision signals.
"""

from typing import List, Optional, Sequence

from services.vision_aggregator import VisionContext

# Presence of any of these means scope/tier/issues were already finalized;
# vision content must not reintroduce unselected issues.
CONFIRMATION_MARKERS = (
    "confirmed scope tier:",
    "confirmed scope:",
    "scope confirmed",
    "selected tier:",
    "selected issues to address:",
    "user confirmed",
)

MAX_OBSERVATIONS = 8
MAX_MATERIALS = 10
MAX_FALLBACK_LABELS = 12


def has_confirmation_marker(notes: Optional[str]) -> bool:
    if not notes:
        return False
    lowered = notes.lower()
    return any(marker in lowered for marker in CONFIRMATION_MARKERS)


def build_enhancement_notes(vision: VisionContext, user_notes: Optional[str]) -> str:
    """Compose enhancement notes.

    Args:
        vision: Aggregated photo signals.
        user_notes: Contractor's notes.

    Returns:
        Only the trimmed user notes when they carry a confirmation marker,
        else user notes followed by vision sections, separated by blank lines.
    """
    notes = (user_notes or "").strip()
    if has_confirmation_marker(notes):
        return notes

    parts: List[str] = []
    if notes:
        parts.append(notes)

    vision_parts: List[str] = []
    if vision.damage:
        vision_parts.append(f"DETECTED DAMAGE: {', '.join(vision.damage)}")
    if vision.issues:
        vision_parts.append(f"DETECTED ISSUES: {', '.join(vision.issues)}")
    if vision.objects:
        observations = "; ".join(
            f"{obj.name}: {obj.notes}" for obj in vision.objects[:MAX_OBSERVATIONS]
        )
        vision_parts.append(f"OBSERVATIONS: {observations}")
    if vision.materials:
        vision_parts.append(
            f"MATERIALS IDENTIFIED: {', '.join(vision.materials[:MAX_MATERIALS])}"
        )

    if not parts and not vision_parts and vision.labels:
        vision_parts.append(
            f"PHOTO ANALYSIS: {', '.join(vision.labels[:MAX_FALLBACK_LABELS])}"
        )

    return "\n\n".join(parts + vision_parts)


def build_job_notes(
    job_notes: Optional[str],
    selected_issue_labels: Optional[Sequence[str]] = None,
) -> Optional[str]:
    """Append the user's selected issues to the job notes.

    The appended "Selected issues to address:" line doubles as a
    confirmation marker for build_enhancement_notes.
    """
    labels = [label.strip() for label in (selected_issue_labels or []) if label and label.strip()]
    if not labels:
        return job_notes

    selected = f"Selected issues to address: {'; '.join(labels)}"
    base = (job_notes or "").strip()
    return f"{base}\n\n{selected}" if base else selected
