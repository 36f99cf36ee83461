"""Chat model access for scope enhancement.

LLMService wraps LangChain's ChatOpenAI: the client is built on first use,
token usage is summed per instance, and provider failures become
DraftPipelineError with an LLM_* code.
"""

import json
from typing import Dict, Any, Optional, List
import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from config.settings import settings
from config.errors import DraftPipelineError, ErrorCode

logger = structlog.get_logger()

JSON_INSTRUCTION = "IMPORTANT: You MUST respond with valid JSON only. No markdown, no explanation, just JSON."


def strip_code_fence(content: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    content = content.strip()
    for fence in ("```json", "```"):
        if content.startswith(fence):
            content = content[len(fence):]
            break
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def map_llm_error(error: Exception) -> DraftPipelineError:
    """Translate a provider exception into a coded pipeline error."""
    text = str(error)
    lowered = text.lower()

    if "rate_limit" in lowered:
        code, message = ErrorCode.LLM_RATE_LIMIT, "OpenAI rate limit exceeded"
    elif "context_length" in lowered or "maximum context" in lowered:
        code, message = ErrorCode.LLM_CONTEXT_TOO_LONG, "Input too long for model context"
    else:
        code, message = ErrorCode.LLM_ERROR, f"LLM generation failed: {text}"

    return DraftPipelineError(code=code, message=message, details={"original_error": text})


class LLMService:
    """ChatOpenAI wrapper used by ScopeEnhancer."""

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        client: Optional[ChatOpenAI] = None
    ):
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self._api_key = api_key
        self._client = client
        self._total_tokens_used = 0

    @property
    def client(self) -> ChatOpenAI:
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self._api_key or settings.openai_api_key
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens_used

    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Invoke the model.

        Returns:
            ``{"content": str, "tokens_used": int}``

        Raises:
            DraftPipelineError: LLM_RATE_LIMIT, LLM_CONTEXT_TOO_LONG or LLM_ERROR.
        """
        kwargs = {"max_tokens": max_tokens} if max_tokens else {}
        try:
            response = await self.client.ainvoke(messages, **kwargs)
        except Exception as e:
            error = map_llm_error(e)
            logger.warning("llm_generation_failed", model=self.model, code=error.code, error=str(e))
            raise error

        usage = (getattr(response, "response_metadata", None) or {}).get("token_usage") or {}
        tokens_used = usage.get("total_tokens", 0)
        self._total_tokens_used += tokens_used

        logger.info(
            "llm_generated",
            model=self.model,
            tokens_used=tokens_used,
            content_length=len(response.content)
        )
        return {"content": response.content, "tokens_used": tokens_used}

    async def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Invoke the model and parse its reply as JSON.

        Raises:
            DraftPipelineError: LLM_ERROR when the reply is not JSON.
        """
        result = await self.generate(
            [
                SystemMessage(content=f"{system_prompt}\n\n{JSON_INSTRUCTION}"),
                HumanMessage(content=user_message)
            ],
            max_tokens
        )

        raw = result["content"]
        try:
            parsed = json.loads(strip_code_fence(raw))
        except json.JSONDecodeError as e:
            raise DraftPipelineError(
                code=ErrorCode.LLM_ERROR,
                message="LLM did not return valid JSON",
                details={"parse_error": str(e), "raw_content": raw[:500]}
            )

        return {"content": parsed, "tokens_used": result["tokens_used"]}
