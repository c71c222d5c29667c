"""Generative model client interface and the Gemini REST implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from .config import Settings
from .exceptions import ModelServiceError, RateLimitedError, ServiceUnavailableError
from .models import GroundingSource
from .redaction import sanitize_text


class ContentTurn(BaseModel):
    role: Literal["user", "model"]
    text: str


class FunctionDeclaration(BaseModel):
    """Tool the model may call; ``parameters`` is an OpenAPI-style schema."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class FunctionCall(BaseModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ModelRequest(BaseModel):
    """One generateContent call."""

    model: str
    contents: str | list[ContentTurn]
    system_instruction: str | None = None
    response_mime_type: str | None = None
    use_search_grounding: bool = False
    function_declarations: list[FunctionDeclaration] = Field(default_factory=list)


class ModelResponse(BaseModel):
    text: str = ""
    sources: list[GroundingSource] = Field(default_factory=list)
    function_calls: list[FunctionCall] = Field(default_factory=list)


class GenerativeModelClient(ABC):
    """Base contract for model backends used by the weather services."""

    @abstractmethod
    async def generate(self, request: ModelRequest) -> ModelResponse:
        """Run one model call; raise ModelServiceError on failure."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release client resources."""


def classify_status(status_code: int, detail: str) -> ModelServiceError:
    """Map an HTTP failure onto the retryable/fatal error taxonomy."""
    message = f"Model request failed with status {status_code}: {sanitize_text(detail[:300])}"
    if status_code == 429:
        return RateLimitedError(message, status_code=status_code)
    if status_code in (500, 503):
        return ServiceUnavailableError(message, status_code=status_code)
    return ModelServiceError(message, status_code=status_code, retryable=False)


class GeminiClient(GenerativeModelClient):
    """Calls ``models/{model}:generateContent`` on the Generative Language API."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._client = httpx.AsyncClient(
            base_url=str(settings.gemini_api_base_url),
            timeout=settings.gemini_timeout_seconds,
            headers={
                "Accept": "application/json",
                "User-Agent": "skycast-weather/0.1",
                "x-goog-api-key": settings.gemini_api_key,
            },
            transport=transport,
        )

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate(self, request: ModelRequest) -> ModelResponse:
        endpoint = f"/v1beta/models/{request.model}:generateContent"
        try:
            response = await self._client.post(endpoint, json=self.build_body(request))
        except httpx.HTTPError as exc:
            # Transport/protocol errors: TimeoutException, NetworkError, etc.
            raise ModelServiceError(
                f"Model request failed ({type(exc).__name__}): {sanitize_text(str(exc))}"
            ) from exc

        if response.status_code >= 400:
            raise classify_status(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ModelServiceError(
                "Model response was not valid JSON.",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise ModelServiceError(
                f"Model response had unexpected type {type(payload).__name__}.",
                status_code=response.status_code,
            )
        return self.parse_response(payload)

    @staticmethod
    def build_body(request: ModelRequest) -> dict[str, Any]:
        if isinstance(request.contents, str):
            contents = [{"role": "user", "parts": [{"text": request.contents}]}]
        else:
            contents = [
                {"role": turn.role, "parts": [{"text": turn.text}]} for turn in request.contents
            ]
        body: dict[str, Any] = {"contents": contents}
        if request.system_instruction:
            body["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}
        if request.response_mime_type:
            body["generationConfig"] = {"responseMimeType": request.response_mime_type}

        tools: list[dict[str, Any]] = []
        if request.use_search_grounding:
            tools.append({"googleSearch": {}})
        if request.function_declarations:
            tools.append(
                {
                    "functionDeclarations": [
                        declaration.model_dump() for declaration in request.function_declarations
                    ]
                }
            )
        if tools:
            body["tools"] = tools
        return body

    @staticmethod
    def parse_response(payload: dict[str, Any]) -> ModelResponse:
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return ModelResponse()
        candidate = candidates[0]
        if not isinstance(candidate, dict):
            return ModelResponse()

        texts: list[str] = []
        calls: list[FunctionCall] = []
        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        for part in parts if isinstance(parts, list) else []:
            if not isinstance(part, dict) or part.get("thought"):
                continue
            if isinstance(part.get("text"), str):
                texts.append(part["text"])
            call = part.get("functionCall")
            if isinstance(call, dict) and isinstance(call.get("name"), str):
                args = call.get("args")
                calls.append(
                    FunctionCall(name=call["name"], args=args if isinstance(args, dict) else {})
                )

        sources: list[GroundingSource] = []
        metadata = candidate.get("groundingMetadata")
        chunks = metadata.get("groundingChunks") if isinstance(metadata, dict) else None
        for chunk in chunks if isinstance(chunks, list) else []:
            web = chunk.get("web") if isinstance(chunk, dict) else None
            if isinstance(web, dict) and isinstance(web.get("uri"), str):
                title = web.get("title")
                sources.append(
                    GroundingSource(uri=web["uri"], title=title if isinstance(title, str) else "")
                )

        return ModelResponse(text="".join(texts), sources=sources, function_calls=calls)
