"""Cloud Function entry points for the mobile proposal draft pipeline.

Provides HTTP endpoints for:
- Generating a GOOD/BETTER/BEST proposal draft for a mobile job
"""

import asyncio
import json
from typing import Dict, Any
from datetime import datetime, date

import structlog
from firebase_functions import https_fn, options
from firebase_admin import initialize_app
from pydantic import ValidationError as PydanticValidationError

from config.errors import DraftPipelineError, ErrorCode, ValidationError
from config.settings import settings
from models.draft import DraftRequest
from services.notes_composer import build_job_notes
from utils.draft_logger import configure_logging

try:
    initialize_app()
except ValueError:
    # Already initialized
    pass

configure_logging(settings.log_level)
logger = structlog.get_logger()

# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Envelope for a generated draft."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Envelope for a failed request."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Parse the body as JSON regardless of Content-Type.

    Raises:
        ValidationError: If the body is not JSON.
    """
    try:
        return req.get_json(force=True) or {}
    except Exception as e:
        raise ValidationError(
            message=f"Invalid JSON in request body: {str(e)}"
        )


def parse_draft_request(data: Dict[str, Any]) -> DraftRequest:
    """Validate a draft request body.

    Selected issues are folded into the job notes so the draft treats them
    as an explicit scope confirmation.

    Raises:
        ValidationError: If the body does not match the request schema.
    """
    try:
        request = DraftRequest.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            message="Invalid draft request",
            details={
                "errors": [
                    {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                    for err in e.errors()
                ]
            }
        )

    if request.selected_issues:
        job = request.job.model_copy(update={
            "job_notes": build_job_notes(request.job.job_notes, request.selected_issues)
        })
        request = request.model_copy(update={"job": job})
    return request


# ============================================================================
# Draft Entry Point
# ============================================================================


@https_fn.on_request(
    timeout_sec=60,
    memory=options.MemoryOption.MB_512,
    region="us-central1"
)
def generate_mobile_draft(req: https_fn.Request) -> https_fn.Response:
    """Generate a proposal draft for a mobile job.

    Request body:
    {
        "job": {...},            // JobInput
        "template": {...},       // TemplateInput
        "user": {...},           // UserProfile (optional)
        "photos": [...],         // PhotoInput[] with optional findings
        "selectedIssues": [...]  // Optional issue labels the user confirmed
    }

    Response:
    {
        "success": true,
        "data": {
            "packages": {"GOOD": {...}, "BETTER": {...}, "BEST": {...}},
            "defaultPackage": "BETTER",
            "confidence": 80,
            "questions": [...],
            "pricing": {...}
        }
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        request = parse_draft_request(data)

        logger.info(
            "draft_request_received",
            job_id=request.job.id,
            trade_id=request.template.trade_id,
            photo_count=len(request.photos),
            selected_issues=len(request.selected_issues)
        )

        output = asyncio.run(_generate_draft_async(request))
        return _json_response(success_response(output))

    except ValidationError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except DraftPipelineError as e:
        logger.error("draft_error", error=e.message, code=e.code)
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=500
        )
    except Exception as e:
        logger.exception("draft_exception", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.DRAFT_FAILED,
                f"Failed to generate draft: {str(e)}"
            ),
            status=500
        )


async def _generate_draft_async(request: DraftRequest) -> Dict[str, Any]:
    """Run the draft orchestrator and return the response payload."""
    from pipeline.draft_orchestrator import DraftOrchestrator
    from utils.draft_logger import log_draft_failed

    orchestrator = DraftOrchestrator()
    try:
        output = await orchestrator.generate_mobile_draft(
            request.job,
            request.template,
            request.user,
            request.photos
        )
    except Exception as e:
        log_draft_failed(request.job.id, str(e))
        raise
    return output.to_response()


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    """204 reply to a browser preflight."""
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Serialize ``data`` with dates as ISO strings."""

    def _json_default(o: Any):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return str(o)

    return https_fn.Response(
        json.dumps(data, default=_json_default),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
