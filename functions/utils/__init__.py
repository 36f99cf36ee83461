"""Utility modules for the draft pipeline functions."""

from utils.draft_logger import (
    log_draft_start,
    log_draft_stage,
    log_draft_complete,
    log_draft_failed,
)

__all__ = [
    "log_draft_start",
    "log_draft_stage",
    "log_draft_complete",
    "log_draft_failed",
]
