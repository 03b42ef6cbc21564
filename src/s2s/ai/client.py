"""Chat-completion client for note summaries and AI-curated collections."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

import httpx
import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from s2s.catalog.grid import CatalogItem
from s2s.errors import ParseError, RemoteError

logger = structlog.get_logger()

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful AI that creates concise summaries of study notes. "
    "Keep summaries clear and focused on key points."
)

CURATOR_SYSTEM_PROMPT = (
    "You are an educational content curator. Given a user's learning goal and a list of "
    "available educational videos, select the most relevant videos that would help them "
    "achieve their goal.\n"
    "Return ONLY a raw JSON object without any markdown formatting or code blocks. "
    "The response must be exactly in this format:\n"
    '{"name":"Collection name","description":"Collection description","videoIds":["id1","id2"]}\n'
    "Do not include any other text, explanation, or formatting in your response."
)


class CollectionSuggestion(BaseModel):
    name: str
    description: str
    videoIds: list[str]  # noqa: N815


class ChatClient:
    """Thin wrapper over an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        summary_model: str = "gpt-4",
        collection_model: str = "gpt-4-turbo-preview",
        timeout: float = 30.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.summary_model = summary_model
        self.collection_model = collection_model
        self.timeout = timeout
        self._http = http

    async def complete(self, model: str, messages: list[dict[str, str]]) -> str:
        """Send one chat request and return the first choice's content.

        Raises:
            RemoteError: transport failure or non-2xx status.
            ParseError: the response body has no usable message content.
        """
        if not self.api_key:
            msg = "AI API key is not configured"
            raise RemoteError(msg)

        request = {"model": model, "messages": messages}
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/chat/completions"
        try:
            if self._http is not None:
                response = await self._http.post(url, headers=headers, json=request, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, headers=headers, json=request, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning("ai_request_failed", model=model, error=str(e))
            raise RemoteError(f"AI request failed: {e}") from e

        if response.status_code >= 400:
            logger.warning("ai_request_rejected", model=model, status=response.status_code)
            raise RemoteError(
                f"AI service returned {response.status_code}",
                status=response.status_code,
            )

        try:
            body: Any = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ParseError("AI response has no message content") from e
        if not isinstance(content, str) or not content.strip():
            msg = "AI response has no message content"
            raise ParseError(msg)
        return content

    async def summarize_note(self, text: str) -> str:
        content = await self.complete(
            self.summary_model,
            [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Please summarize the following study notes in a concise paragraph:\n\n{text}",
                },
            ],
        )
        return content.strip()

    async def curate_collection(self, goal: str, videos: Iterable[CatalogItem]) -> CollectionSuggestion:
        """Ask the model to pick videos for ``goal``. Raises ParseError on a malformed reply."""
        catalog = [
            {
                "id": v.id,
                "title": v.title,
                "description": v.description,
                "subject": v.subject,
                "complexityLevel": v.complexity_level,
            }
            for v in videos
        ]
        user_prompt = (
            f"User goal: {goal}\n\n"
            f"Available videos:\n{json.dumps(catalog)}\n\n"
            "Create a collection that helps achieve this goal."
        )
        content = await self.complete(
            self.collection_model,
            [
                {"role": "system", "content": CURATOR_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
        )
        return parse_collection(content)


def parse_collection(content: str) -> CollectionSuggestion:
    """Decode a single JSON object with the expected keys."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ParseError("AI collection response is not JSON") from e
    if not isinstance(data, dict):
        msg = "AI collection response is not a JSON object"
        raise ParseError(msg)
    try:
        return CollectionSuggestion.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError("AI collection response has the wrong shape") from e
