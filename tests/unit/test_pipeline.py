"""Unit tests for transcripts, context loading and the end-to-end pipeline."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from issue_intake.core import (
    ContextUnavailableException,
    LLMException,
    StorageException,
    TrackerException,
    TranscriptionException,
)
from issue_intake.triage.application import ContextSnapshotLoader, TranscriptExtractor
from issue_intake.triage.domain import (
    ContextSnapshot,
    DeterministicRouter,
    RoutingConfig,
    RoutingRule,
    Submission,
)
from issue_intake.triage.infrastructure import create_triage_pipeline


class TestTranscriptExtractor:
    """Test suite for best-effort transcription."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sections_in_attachment_order(self, llm_client, attachment_factory):
        attachments = [
            attachment_factory("one.mp3", "audio/mpeg"),
            attachment_factory("two.mp4", "video/mp4"),
        ]

        transcript = await TranscriptExtractor(llm_client).extract(attachments)

        assert transcript == (
            "[Transcript one.mp3]\nspoken words in one.mp3\n"
            "[Transcript two.mp4]\nspoken words in two.mp4"
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, llm_client, attachment_factory):
        async def transcribe(data, filename, content_type):
            if filename == "bad.mp3":
                raise TranscriptionException("unsupported codec")
            return "fine"

        llm_client.transcribe = AsyncMock(side_effect=transcribe)
        attachments = [
            attachment_factory("bad.mp3", "audio/mpeg"),
            attachment_factory("good.mp3", "audio/mpeg"),
        ]

        transcript = await TranscriptExtractor(llm_client).extract(attachments)

        assert transcript == "[Transcript good.mp3]\nfine"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_adapter_error_is_isolated(self, llm_client, attachment_factory):
        async def transcribe(data, filename, content_type):
            if filename == "bad.mp3":
                raise RuntimeError("decoder crashed")
            return "fine"

        llm_client.transcribe = AsyncMock(side_effect=transcribe)
        attachments = [
            attachment_factory("bad.mp3", "audio/mpeg"),
            attachment_factory("good.mp3", "audio/mpeg"),
        ]

        transcript = await TranscriptExtractor(llm_client).extract(attachments)

        assert transcript == "[Transcript good.mp3]\nfine"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_all_failures_give_empty_transcript(self, llm_client, attachment_factory):
        llm_client.transcribe = AsyncMock(side_effect=TranscriptionException("down"))

        transcript = await TranscriptExtractor(llm_client).extract([attachment_factory("a.mp3", "audio/mpeg")])

        assert transcript == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_truncated_to_cap(self, llm_client, attachment_factory):
        llm_client.transcribe = AsyncMock(return_value="x" * 5000)

        transcript = await TranscriptExtractor(llm_client, max_chars=4000).extract(
            [attachment_factory("long.mp3", "audio/mpeg")]
        )

        assert len(transcript) == 4000
        assert transcript.startswith("[Transcript long.mp3]\n")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_attachments_skips_model(self, llm_client):
        assert await TranscriptExtractor(llm_client).extract([]) == ""
        llm_client.transcribe.assert_not_called()


class TestContextSnapshotLoader:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_loads_snapshot(self, tracker, snapshot):
        loaded = await ContextSnapshotLoader(tracker, recent_issues=5).load()

        assert loaded is snapshot
        tracker.get_context.assert_awaited_once_with(5)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_tracker_failure_becomes_context_unavailable(self, tracker):
        tracker.get_context = AsyncMock(side_effect=TrackerException("listContext failed with HTTP 500"))

        with pytest.raises(ContextUnavailableException) as exc_info:
            await ContextSnapshotLoader(tracker).load()
        assert exc_info.value.message == (
            "Linear: cannot list teams, projects and users (listContext failed with HTTP 500)"
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_teams_is_fatal(self, tracker):
        tracker.get_context = AsyncMock(return_value=ContextSnapshot())

        with pytest.raises(ContextUnavailableException):
            await ContextSnapshotLoader(tracker).load()


class TestTriagePipeline:
    """Test suite for the full run with mocked collaborators."""

    @pytest.fixture
    def pipeline(self, llm_client, tracker, attachment_store):
        return create_triage_pipeline(llm_client, tracker, attachment_store)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_creates_routed_issue(self, pipeline, tracker, attachment_factory):
        submission = Submission(
            reporter_name="Dana",
            details="Customer wants to cancel, please process churn",
            attachments=(
                attachment_factory("shot.png", "image/png"),
                attachment_factory("memo.m4a", "audio/mp4"),
            )
        )

        outcome = await pipeline.run(submission)

        assert outcome.duplicate is False
        assert outcome.issue_id == "CX-42"
        kwargs = tracker.create_issue.call_args.kwargs
        assert kwargs["team_id"] == "team-cx"
        assert kwargs["assignee_id"] == "user-hamza"
        assert kwargs["description"].endswith(
            "Submitted by: Dana\n\nAttachments:\n"
            "- [shot.png](https://bucket.s3.amazonaws.com/uploads/0-shot.png)\n"
            "- [memo.m4a](https://bucket.s3.amazonaws.com/uploads/1-memo.m4a)"
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transcript_reaches_prompt(self, pipeline, llm_client, attachment_factory):
        submission = Submission(attachments=(attachment_factory("memo.m4a", "audio/mp4"),))

        await pipeline.run(submission)

        prompt = llm_client.chat_completion.call_args.kwargs["messages"][1]["content"]
        assert "[Transcript memo.m4a]\nspoken words in memo.m4a" in prompt

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_attachments_skips_storage(self, pipeline, attachment_store):
        await pipeline.run(Submission(details="hello"))
        attachment_store.upload_many.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_upload_failure_creates_nothing(self, pipeline, tracker, attachment_store, attachment_factory):
        attachment_store.upload_many = AsyncMock(side_effect=StorageException("AccessDenied"))

        with pytest.raises(StorageException):
            await pipeline.run(Submission(attachments=(attachment_factory(),)))

        tracker.create_issue.assert_not_called()
        tracker.add_comment.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_model_failure_is_fatal(self, pipeline, llm_client, tracker):
        llm_client.chat_completion = AsyncMock(side_effect=LLMException("rate limited"))

        with pytest.raises(LLMException):
            await pipeline.run(Submission(details="hello"))
        tracker.create_issue.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_context_unavailable_is_fatal(self, pipeline, tracker):
        tracker.get_context = AsyncMock(side_effect=TrackerException("unauthorized"))

        with pytest.raises(ContextUnavailableException):
            await pipeline.run(Submission(details="hello"))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_custom_router_provider(self, llm_client, tracker, attachment_store):
        router = DeterministicRouter(RoutingConfig(
            rules=[RoutingRule(include=["zzz"], team="Sales", assignee="Ray")]
        ))
        pipeline = create_triage_pipeline(llm_client, tracker, attachment_store, lambda: router)

        await pipeline.run(Submission(details="zzz"))

        kwargs = tracker.create_issue.call_args.kwargs
        assert kwargs["team_id"] == "team-sales"
        assert kwargs["assignee_id"] == "user-ray"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stages_run_concurrently(self, pipeline, tracker, attachment_store, snapshot, attachment_factory):
        """Context loading and uploads are both in flight before either finishes."""
        started = []
        release = asyncio.Event()

        async def get_context(recent):
            started.append("context")
            await release.wait()
            return snapshot

        async def upload_many(attachments):
            started.append("upload")
            release.set()
            return []

        tracker.get_context = AsyncMock(side_effect=get_context)
        attachment_store.upload_many = AsyncMock(side_effect=upload_many)

        await asyncio.wait_for(pipeline.run(Submission(attachments=(attachment_factory(),))), timeout=5)

        assert set(started) == {"context", "upload"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_context_failure_cancels_uploads(self, pipeline, tracker, attachment_store, attachment_factory):
        upload_started = asyncio.Event()
        upload_cancelled = asyncio.Event()

        async def get_context(recent):
            await upload_started.wait()
            raise TrackerException("unauthorized")

        async def upload_many(attachments):
            upload_started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                upload_cancelled.set()
                raise

        tracker.get_context = AsyncMock(side_effect=get_context)
        attachment_store.upload_many = AsyncMock(side_effect=upload_many)

        with pytest.raises(ContextUnavailableException):
            await asyncio.wait_for(pipeline.run(Submission(attachments=(attachment_factory(),))), timeout=5)

        assert upload_cancelled.is_set()
        tracker.create_issue.assert_not_called()
