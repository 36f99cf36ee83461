"""
Scope enhancement via LLM.

Rewrites a template's base scope into proposal-ready line items, using the
job's notes and photo observations for site-specific detail. Failures are
reported in the result rather than raised, and the caller's base scope is
echoed back so the draft can proceed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from config.errors import DraftPipelineError, ErrorCode
from services.llm_service import LLMService

logger = structlog.get_logger(__name__)


SCOPE_ENHANCER_SYSTEM_PROMPT = """You are a senior estimator at a residential contracting firm writing the scope of work for a client proposal.

Rewrite the provided scope into clear, specific, professional line items:
- Use industry-standard terminology and active voice.
- Keep a logical work sequence (protect -> demo -> prep -> install -> finish -> cleanup).
- Use the contractor's site notes for job-specific detail, but do not add work for issues the notes do not mention.
- Keep roughly the same number of items; add only what is needed for completeness.
- Each item is 1-2 sentences.

Respond with a JSON object: {"scope": ["Line item 1.", "Line item 2."]}"""


@dataclass
class EnhanceScopeRequest:
    job_type_name: str
    base_scope: List[str]
    client_name: Optional[str] = None
    address: Optional[str] = None
    job_notes: Optional[str] = None


@dataclass
class EnhanceScopeResult:
    success: bool
    enhanced_scope: List[str] = field(default_factory=list)
    error: Optional[Dict[str, Any]] = None


def build_user_message(request: EnhanceScopeRequest) -> str:
    lines = ["PROJECT DETAILS:", f"- Job Type: {request.job_type_name}"]
    if request.client_name:
        lines.append(f"- Client: {request.client_name}")
    if request.address:
        lines.append(f"- Location: {request.address}")
    if request.job_notes:
        lines.extend(["", "CONTRACTOR'S NOTES FROM SITE VISIT:", request.job_notes])

    lines.extend(["", "CURRENT SCOPE:"])
    lines.extend(f"{i}. {item}" for i, item in enumerate(request.base_scope, start=1))
    return "\n".join(lines)


def _parse_scope(content: Any) -> Optional[List[str]]:
    """Accept {"scope": [...]} or a bare list of non-empty strings."""
    if isinstance(content, dict):
        content = content.get("scope")
    if not isinstance(content, list) or not content:
        return None
    if not all(isinstance(item, str) and item.strip() for item in content):
        return None
    return [item.strip() for item in content]


class ScopeEnhancer:
    """LLM-backed scope enhancement collaborator."""

    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or LLMService()

    def _failed(self, request: EnhanceScopeRequest, code: str, message: str) -> EnhanceScopeResult:
        logger.warning(
            "scope_enhancement_failed",
            job_type=request.job_type_name,
            code=code,
            error=message,
        )
        return EnhanceScopeResult(
            success=False,
            enhanced_scope=list(request.base_scope),
            error={"code": code, "message": message},
        )

    async def enhance_scope(self, request: EnhanceScopeRequest) -> EnhanceScopeResult:
        """Enhance a base scope.

        Returns:
            EnhanceScopeResult; on failure ``success`` is False and
            ``enhanced_scope`` is the unchanged base scope.
        """
        if not request.job_type_name:
            return self._failed(request, ErrorCode.INVALID_INPUT, "Job type name is required")
        if not request.base_scope:
            return self._failed(request, ErrorCode.INVALID_INPUT, "Base scope must be a non-empty list")

        try:
            result = await self.llm.generate_json(
                SCOPE_ENHANCER_SYSTEM_PROMPT,
                build_user_message(request),
            )
        except DraftPipelineError as e:
            return self._failed(request, e.code, e.message)

        scope = _parse_scope(result["content"])
        if scope is None:
            return self._failed(request, ErrorCode.ENHANCEMENT_FAILED, "LLM returned an invalid scope format")

        logger.info(
            "scope_enhanced",
            job_type=request.job_type_name,
            base_items=len(request.base_scope),
            enhanced_items=len(scope),
            tokens_used=result.get("tokens_used", 0),
        )
        return EnhanceScopeResult(success=True, enhanced_scope=scope)
