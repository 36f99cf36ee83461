"""Draft Pipeline Logger.

Banner-style logging for draft runs so each stage stands out in the
Functions log stream, alongside the structured structlog events.
"""

import json
import logging
import structlog
from typing import Dict, Any, List
from datetime import datetime, timezone

logger = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with ISO timestamps, dropping events below ``level``."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        )
    )

BANNER_WIDTH = 80
PIPELINE_BANNER_CHAR = "█"
STAGE_BANNER_CHAR = "═"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _format_json(data: Dict[str, Any], indent: int = 2) -> str:
    try:
        return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(data)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_draft_start(job_id: int, trade_id: str, photo_count: int) -> None:
    """Log draft generation start with prominent banner."""
    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, "MOBILE DRAFT STARTED"))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Job ID    : {job_id}")
    print(f"║ Trade     : {trade_id}")
    print(f"║ Photos    : {photo_count}")
    print(f"║ Timestamp : {_timestamp()}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "draft_start_logged",
        job_id=job_id,
        trade_id=trade_id,
        photo_count=photo_count
    )


def log_draft_stage(job_id: int, stage: str, summary: Dict[str, Any]) -> None:
    """Log the outcome of one pipeline stage."""
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(STAGE_BANNER_CHAR, f"▶ STAGE: {stage.upper()}"))
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Job ID : {job_id}")
    for line in _format_json(summary).split("\n"):
        print(f"  {line}")
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "draft_stage_logged",
        job_id=job_id,
        stage=stage,
        summary_keys=list(summary.keys())
    )


def log_draft_complete(
    job_id: int,
    confidence: int,
    totals: Dict[str, int],
    questions: List[str],
    duration_ms: int
) -> None:
    """Log draft completion with summary."""
    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, "✓ MOBILE DRAFT COMPLETED"))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Job ID     : {job_id}")
    print(f"║ Timestamp  : {_timestamp()}")
    print(f"║ Duration   : {duration_ms:,} ms ({duration_ms / 1000:.2f}s)")
    print(f"║ Confidence : {confidence}/95")
    print(f"║ Totals     : {', '.join(f'{tier} ${total:,}' for tier, total in totals.items())}")
    print(f"║ Questions  : {len(questions)}")
    for question in questions:
        print(f"║   ? {question}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "draft_complete_logged",
        job_id=job_id,
        confidence=confidence,
        duration_ms=duration_ms,
        question_count=len(questions)
    )


def log_draft_failed(job_id: int, error: str) -> None:
    """Log an unexpected draft failure."""
    print("\n")
    print("!" * BANNER_WIDTH)
    print(_create_banner("!", "✗ MOBILE DRAFT FAILED"))
    print("!" * BANNER_WIDTH)
    print(f"║ Job ID    : {job_id}")
    print(f"║ Timestamp : {_timestamp()}")
    print(f"║ Error     : {error}")
    print("!" * BANNER_WIDTH)
    print("\n")

    logger.error(
        "draft_failed_logged",
        job_id=job_id,
        error=error
    )
