"""
LLM Client Infrastructure
==========================

Wrapper for the OpenAI API providing a clean interface for the two model
capabilities the triage pipeline needs: structured chat completion and
speech-to-text.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the domain layer depends on abstractions,
not concrete implementations.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError

from issue_intake.config import settings
from issue_intake.core import LLMException, TranscriptionException, ConfigurationException
from issue_intake.shared.infrastructure.grafana import get_grafana_exporter


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1500,
        operation: str = "chat_completion",
        response_format: Optional[dict] = None
    ) -> ChatCompletionResult:
        """Generate chat completion."""

    @abstractmethod
    async def transcribe(self, data: bytes, filename: str, content_type: str) -> str:
        """Transcribe an audio or video payload to text."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation.

    Provides async wrapper around OpenAI SDK operations.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=self._api_key)
        self._model = settings.llm_model
        self._transcription_model = settings.transcription_model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1500,
        operation: str = "chat_completion",
        response_format: Optional[dict] = None
    ) -> ChatCompletionResult:
        """
        Generate chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation type for metrics
            response_format: Optional OpenAI ``response_format`` (e.g. a JSON schema)

        Returns:
            ChatCompletionResult with generated text

        Raises:
            LLMException: If the API call fails
        """
        start_time = time.perf_counter()

        kwargs = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format is not None:
            kwargs["response_format"] = response_format

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise LLMException(f"Chat completion failed: {e}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        content = response.choices[0].message.content if response.choices else None
        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else 0
        completion_tokens = usage.completion_tokens if usage else 0

        exporter = get_grafana_exporter()
        if exporter.is_enabled():
            await exporter.export_llm_metrics(
                model=self._model,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                latency_ms=latency_ms,
                operation=operation
            )

        return ChatCompletionResult(
            content=content or "",
            model=self._model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms
        )

    async def transcribe(self, data: bytes, filename: str, content_type: str) -> str:
        """
        Transcribe audio/video bytes with the configured speech-to-text model.

        Raises:
            TranscriptionException: If the API rejects or fails the request
        """
        try:
            transcript = await self._client.audio.transcriptions.create(
                model=self._transcription_model,
                file=(filename, data, content_type),
                response_format="text"
            )
        except OpenAIError as e:
            raise TranscriptionException(f"{filename}: {e}")

        if isinstance(transcript, str):
            return transcript
        return getattr(transcript, "text", "") or ""


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for testing.

    Returns predictable responses without calling external APIs.
    """

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1500,
        operation: str = "chat_completion",
        response_format: Optional[dict] = None
    ) -> ChatCompletionResult:
        """Return a schema-conforming mock issue."""
        user_content = str(messages[-1].get("content", "")) if messages else ""
        first_line = user_content.splitlines()[0] if user_content else ""
        details = first_line.split(":", 1)[-1].strip() or "Mock submission"

        content = json.dumps({
            "title": details[:80],
            "description": f"Mock: {details}",
            "teamName": "",
            "projectName": "",
            "assigneeEmail": "",
            "priority": 3,
            "category": "task",
            "severity": "medium"
        })

        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=100
        )

    async def transcribe(self, data: bytes, filename: str, content_type: str) -> str:
        """Return a fixed transcript naming the file."""
        return f"Mock transcript of {filename}"
