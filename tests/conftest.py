"""Pytest configuration and fixtures."""

import json
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from issue_intake.infrastructure.llm import ChatCompletionResult
from issue_intake.triage.application import (
    IAttachmentStore,
    ILLMClient,
    ITrackerGateway,
)
from issue_intake.triage.domain import (
    Attachment,
    ContextSnapshot,
    IssueRef,
    Project,
    RecentIssue,
    StoredAttachment,
    Team,
    User,
)


# Tracker context
@pytest.fixture
def snapshot() -> ContextSnapshot:
    """Workspace with the three teams the default rule table routes to."""
    return ContextSnapshot(
        teams=[
            Team(id="team-cx", name="Customer Experience (CX)"),
            Team(id="team-pt", name="Product/Tech"),
            Team(id="team-sales", name="Sales"),
        ],
        projects=[
            Project(id="proj-web", name="Website"),
            Project(id="proj-billing", name="Billing"),
        ],
        users=[
            User(id="user-hamza", name="Hamza Malik", email="hamza@example.com"),
            User(id="user-canyon", name="Canyon Reyes", email="canyon@example.com"),
            User(id="user-ray", name="Ray Chen", email="ray@example.com"),
            User(id="user-neb", name="Nebuchadnezzar Jones", email="neb@example.com"),
        ],
        recent_issues=[
            RecentIssue(id="issue-1", identifier="CX-1", title="Login fails on Safari"),
        ]
    )


# Mock LLM responses
@pytest.fixture
def suggestion_json() -> Callable[..., str]:
    """Factory for classifier output in the structured-output shape."""
    def make(**overrides) -> str:
        payload = {
            "title": "Checkout page crashes",
            "description": "The checkout page crashes after entering a card.",
            "teamName": "",
            "projectName": "",
            "assigneeEmail": "",
            "priority": 2,
            "category": "task",
            "severity": "medium",
        }
        payload.update(overrides)
        return json.dumps(payload)

    return make


@pytest.fixture
def completion() -> Callable[[str], ChatCompletionResult]:
    """Wrap raw content as a chat completion result."""
    def make(content: str) -> ChatCompletionResult:
        return ChatCompletionResult(
            content=content,
            model="test-model",
            prompt_tokens=10,
            completion_tokens=10,
            latency_ms=5
        )

    return make


@pytest.fixture
def llm_client(completion, suggestion_json) -> MagicMock:
    """LLM client returning a valid suggestion and echoing transcripts."""
    client = MagicMock(spec=ILLMClient)
    client.chat_completion = AsyncMock(return_value=completion(suggestion_json()))
    client.transcribe = AsyncMock(side_effect=lambda data, filename, content_type: f"spoken words in {filename}")
    return client


@pytest.fixture
def tracker(snapshot) -> MagicMock:
    """Tracker with no search hits that creates CX-42."""
    gateway = MagicMock(spec=ITrackerGateway)
    gateway.get_context = AsyncMock(return_value=snapshot)
    gateway.search_issues = AsyncMock(return_value=[])
    gateway.create_issue = AsyncMock(return_value=IssueRef(
        id="issue-42",
        identifier="CX-42",
        title="Checkout page crashes",
        url="https://linear.app/acme/issue/CX-42"
    ))
    gateway.add_comment = AsyncMock(return_value=None)
    gateway.update_issue = AsyncMock(return_value=None)
    return gateway


@pytest.fixture
def attachment_store() -> MagicMock:
    """Store that hands back one URL per attachment, in order."""
    store = MagicMock(spec=IAttachmentStore)

    async def upload_many(attachments):
        return [
            StoredAttachment(
                filename=a.filename,
                url=f"https://bucket.s3.amazonaws.com/uploads/{i}-{a.filename}",
                key=f"uploads/{i}-{a.filename}"
            )
            for i, a in enumerate(attachments)
        ]

    store.upload_many = AsyncMock(side_effect=upload_many)
    return store


# Sample attachment factory
@pytest.fixture
def attachment_factory() -> Callable[..., Attachment]:
    def make(filename: str = "screenshot.png", content_type: str = "image/png", data: bytes = b"\x89PNG") -> Attachment:
        return Attachment(filename=filename, content_type=content_type, data=data)

    return make
