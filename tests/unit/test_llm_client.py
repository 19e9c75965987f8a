"""Unit tests for the LLM client wrappers."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import OpenAIError

from issue_intake.core import LLMException, TranscriptionException
from issue_intake.infrastructure.llm import MockLLMClient, OpenAILLMClient
from issue_intake.triage.application import IssueSynthesizer
from issue_intake.triage.domain import ClassifiedAttachments
from issue_intake.triage.infrastructure import LLMClientAdapter


@pytest.fixture
def openai_client():
    with patch("issue_intake.infrastructure.llm.AsyncOpenAI") as factory:
        yield factory.return_value


class TestOpenAILLMClient:
    """Test suite for the OpenAI wrapper with the SDK mocked out."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_chat_completion_passes_response_format(self, openai_client):
        message = MagicMock(content='{"title": "x"}')
        openai_client.chat.completions.create = AsyncMock(return_value=MagicMock(
            choices=[MagicMock(message=message)],
            usage=MagicMock(prompt_tokens=3, completion_tokens=4)
        ))
        client = OpenAILLMClient(api_key="sk-test")

        result = await client.chat_completion(
            [{"role": "user", "content": "hi"}], response_format={"type": "json_object"}
        )

        assert result.content == '{"title": "x"}'
        assert result.total_tokens == 7
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_chat_failure_raises_llm_exception(self, openai_client):
        openai_client.chat.completions.create = AsyncMock(side_effect=OpenAIError("quota"))

        with pytest.raises(LLMException):
            await OpenAILLMClient(api_key="sk-test").chat_completion([])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transcribe(self, openai_client):
        openai_client.audio.transcriptions.create = AsyncMock(return_value="hello there")

        text = await OpenAILLMClient(api_key="sk-test").transcribe(b"abc", "memo.m4a", "audio/mp4")

        assert text == "hello there"
        kwargs = openai_client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["file"] == ("memo.m4a", b"abc", "audio/mp4")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transcribe_failure_raises_transcription_exception(self, openai_client):
        openai_client.audio.transcriptions.create = AsyncMock(side_effect=OpenAIError("bad audio"))

        with pytest.raises(TranscriptionException):
            await OpenAILLMClient(api_key="sk-test").transcribe(b"abc", "memo.m4a", "audio/mp4")


class TestMockLLMClient:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_output_is_valid_issue(self, snapshot):
        """Mock output goes through the real synthesizer unchanged."""
        synthesizer = IssueSynthesizer(LLMClientAdapter(MockLLMClient()))

        draft = await synthesizer.synthesize(snapshot, ClassifiedAttachments(), details="printer on fire")

        assert draft.title == "printer on fire"
        assert draft.description == "Mock: printer on fire"
        assert draft.priority == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_chat_content_is_json(self):
        result = await MockLLMClient().chat_completion([{"role": "user", "content": "Details: x"}])
        assert json.loads(result.content)["category"] == "task"
