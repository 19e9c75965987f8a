"""
Triage External Service Adapters
==================================

Adapters for external services (LLM, Linear, S3) used by the triage module.

Implements the interfaces defined in the application layer using concrete
external service implementations.
"""

from typing import Callable, List, Optional, Sequence

from issue_intake.config import settings
from issue_intake.infrastructure.llm import ChatCompletionResult, OpenAILLMClient
from issue_intake.infrastructure.storage import S3StorageAdapter
from issue_intake.infrastructure.tracker import LinearClient, TrackerIssue
from issue_intake.triage.application import (
    ContextSnapshotLoader,
    IAttachmentStore,
    ILLMClient,
    ITrackerGateway,
    IssueDispatcher,
    IssueSynthesizer,
    RoutingResolver,
    TranscriptExtractor,
    TriagePipeline,
)
from issue_intake.triage.domain import (
    Attachment,
    ContextSnapshot,
    DeterministicRouter,
    IssueRef,
    Project,
    RecentIssue,
    StoredAttachment,
    Team,
    User,
)


class LLMClientAdapter(ILLMClient):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements the application layer ILLMClient interface using
    the infrastructure layer OpenAILLMClient (or any drop-in such as
    MockLLMClient).
    """

    def __init__(self, client=None, api_key: Optional[str] = None):
        self._client = client or OpenAILLMClient(api_key)

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1500,
        operation: str = "chat_completion",
        response_format: Optional[dict] = None
    ) -> ChatCompletionResult:
        """Generate chat completion."""
        return await self._client.chat_completion(
            messages, temperature, max_tokens, operation, response_format
        )

    async def transcribe(self, data: bytes, filename: str, content_type: str) -> str:
        """Transcribe one audio/video payload."""
        return await self._client.transcribe(data, filename, content_type)


def _issue_ref(issue: TrackerIssue) -> IssueRef:
    return IssueRef(id=issue.id, identifier=issue.identifier, title=issue.title, url=issue.url)


class LinearTrackerAdapter(ITrackerGateway):
    """
    Adapter that wraps the Linear GraphQL client.

    Maps raw GraphQL nodes to triage domain entities.
    """

    def __init__(self, client: Optional[LinearClient] = None, api_key: Optional[str] = None):
        self._client = client or LinearClient(api_key)

    async def get_context(self, recent_issues: int) -> ContextSnapshot:
        nodes = await self._client.list_context(recent_issues)
        return ContextSnapshot(
            teams=[Team(id=n["id"], name=n.get("name") or "") for n in nodes["teams"]],
            projects=[Project(id=n["id"], name=n.get("name") or "") for n in nodes["projects"]],
            users=[
                User(id=n["id"], name=n.get("name") or "", email=n.get("email"))
                for n in nodes["users"]
            ],
            recent_issues=[
                RecentIssue(id=n["id"], identifier=n.get("identifier"), title=n.get("title"))
                for n in nodes["issues"]
            ]
        )

    async def search_issues(self, term: str) -> List[IssueRef]:
        return [_issue_ref(issue) for issue in await self._client.search_issues(term)]

    async def create_issue(
        self,
        title: str,
        description: str,
        team_id: str,
        project_id: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_id: Optional[str] = None
    ) -> IssueRef:
        issue = await self._client.create_issue(
            title=title,
            description=description,
            team_id=team_id,
            project_id=project_id,
            priority=priority,
            assignee_id=assignee_id
        )
        return _issue_ref(issue)

    async def add_comment(self, issue_id: str, body: str) -> None:
        await self._client.add_comment(issue_id, body)

    async def update_issue(
        self,
        issue_id: str,
        assignee_id: Optional[str] = None,
        project_id: Optional[str] = None,
        priority: Optional[int] = None
    ) -> None:
        await self._client.update_issue(
            issue_id,
            assignee_id=assignee_id,
            project_id=project_id,
            priority=priority
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()


class S3AttachmentStore(IAttachmentStore):
    """
    Adapter that wraps the S3 storage client.

    Pairs every upload with the attachment it came from.
    """

    def __init__(self, storage: Optional[S3StorageAdapter] = None):
        self._storage = storage or S3StorageAdapter()

    async def upload_many(self, attachments: Sequence[Attachment]) -> List[StoredAttachment]:
        uploads = await self._storage.upload_many(attachments)
        return [
            StoredAttachment(filename=attachment.filename, url=upload.url, key=upload.key)
            for attachment, upload in zip(attachments, uploads)
        ]


def create_triage_pipeline(
    llm: ILLMClient,
    tracker: ITrackerGateway,
    store: IAttachmentStore,
    router_provider: Optional[Callable[[], DeterministicRouter]] = None
) -> TriagePipeline:
    """
    Wire the triage pipeline from its three collaborators.

    Without a ``router_provider`` the built-in rule table is used.
    """
    if router_provider is None:
        default_router = DeterministicRouter()

        def router_provider() -> DeterministicRouter:
            return default_router

    return TriagePipeline(
        router_provider=router_provider,
        snapshot_loader=ContextSnapshotLoader(tracker, settings.recent_issues_limit),
        transcript_extractor=TranscriptExtractor(llm, settings.transcript_max_chars),
        synthesizer=IssueSynthesizer(llm, settings.llm_temperature, settings.llm_max_tokens),
        attachment_store=store,
        dispatcher=IssueDispatcher(tracker),
        resolver=RoutingResolver()
    )
