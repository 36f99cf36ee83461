"""
Confidence Scorer.

Composite draft confidence from enhancement outcome, photo coverage, vision
signal quality, notes and market data. Capped at 95: a generated draft is
always provisional.
"""

from typing import Optional

MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 95

BASE_ENHANCED = 70
BASE_NOT_ENHANCED = 45

SUBSTANTIAL_NOTES_LENGTH = 20


def has_substantial_notes(notes: Optional[str]) -> bool:
    return bool(notes) and len(notes.strip()) > SUBSTANTIAL_NOTES_LENGTH


def score_confidence(
    enhance_succeeded: bool,
    photo_count: int,
    vision_avg_confidence: float,
    has_detected_issues: bool,
    has_substantial_notes: bool,
    needs_more_photos_count: int,
    market_data_available: bool,
) -> int:
    """Score draft confidence in [0, 95].

    Args:
        enhance_succeeded: Scope enhancement returned a usable scope.
        photo_count: Number of job photos.
        vision_avg_confidence: Mean vision confidence (0-1).
        has_detected_issues: Any damage or issue was detected.
        has_substantial_notes: Contractor notes are longer than 20 chars.
        needs_more_photos_count: Outstanding needs-more-photos hints.
        market_data_available: Regional market pricing was used.
    """
    score = BASE_ENHANCED if enhance_succeeded else BASE_NOT_ENHANCED

    if photo_count >= 3:
        score += 10
    elif photo_count >= 2:
        score += 5

    if vision_avg_confidence > 0.7:
        score += 10
    elif vision_avg_confidence > 0.5:
        score += 5

    if has_detected_issues:
        score += 5
    if has_substantial_notes:
        score += 5
    if needs_more_photos_count == 0 and photo_count >= 3:
        score += 5
    if market_data_available:
        score += 5

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, score))
