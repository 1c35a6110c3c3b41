import json
import logging
from http import HTTPStatus
from typing import Any, Dict, Optional

import httpx

from mathdoc.core.config import ERROR_BODY_MAX_CHARS, LLM_REQUEST_TIMEOUT_SECONDS
from mathdoc.core.exceptions import GenerationError
from mathdoc.core.settings import get_llm_settings
from mathdoc.pipeline.prompts import EXERCISE_EXTRACTION_PROMPT, SOLUTION_PROMPT

logger = logging.getLogger(__name__)


def _extract_message_content(body: Any) -> str:
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise GenerationError(
            "LLM response has no message content", {"reason": repr(e)}
        ) from e
    if not isinstance(content, str) or not content.strip():
        raise GenerationError("LLM response message is empty")
    return content


def parse_json_object(content: str) -> Dict[str, Any]:
    """Decode the model output; anything but a JSON object is a failure."""
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise GenerationError(
            "LLM response is not valid JSON",
            {"reason": str(e), "body": content[:ERROR_BODY_MAX_CHARS]},
        ) from e
    if not isinstance(parsed, dict):
        raise GenerationError(
            "LLM response is not a JSON object",
            {"reason": type(parsed).__name__},
        )
    return parsed


class LLMClient:
    """Generative text service client.

    Only the transport contract is enforced here: a JSON object comes back
    or ``GenerationError`` is raised. Domain content is not validated.
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        *,
        timeout: float = LLM_REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_llm_settings()
        self.endpoint_url = endpoint_url or settings.LLM_ENDPOINT_URL
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY.get_secret_value()
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout
        self._transport = transport

    async def complete_json(self, prompt: str, content: str, *, temperature: float = 0.0) -> Dict[str, Any]:
        """
        Send prompt + content and return the decoded JSON object.

        Raises:
            GenerationError: On transport failure, non-2xx status, or a
                missing/unparsable response body.
        """
        payload = {
            "model": self.model,
            "temperature": temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "user", "content": f"{prompt}\n\nContent:\n{content}"},
            ],
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint_url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise GenerationError("LLM request timed out", {"reason": str(e)}) from e
        except httpx.RequestError as e:
            raise GenerationError("LLM service unavailable", {"reason": str(e)}) from e

        if not response.is_success:
            error_type = (
                "rate limited"
                if response.status_code == HTTPStatus.TOO_MANY_REQUESTS
                else "error"
            )
            logger.error(
                "LLM HTTP %s: %s", response.status_code, error_type,
                extra={"service": "LLM", "http_status": response.status_code},
            )
            raise GenerationError(
                f"LLM service {error_type}",
                {
                    "reason": f"HTTP {response.status_code}",
                    "body": response.text[:ERROR_BODY_MAX_CHARS],
                },
            )

        if not response.content:
            raise GenerationError("LLM response body is empty")

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise GenerationError("LLM response body is not JSON", {"reason": str(e)}) from e

        return parse_json_object(_extract_message_content(body))

    async def extract_exercises(self, markup: str) -> Dict[str, Any]:
        return await self.complete_json(EXERCISE_EXTRACTION_PROMPT, markup)

    async def generate_solution(self, question: str, context: Optional[str] = None) -> Dict[str, Any]:
        content = question if not context else f"Context:\n{context}\n\nExercise:\n{question}"
        return await self.complete_json(SOLUTION_PROMPT, content)
