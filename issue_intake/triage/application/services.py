"""
Triage Application Services
============================

Application services for the submission triage pipeline.

Orchestrates business logic between domain entities and the external
collaborators (model, tracker, attachment storage), which are reached only
through the interfaces declared here.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from issue_intake.config import DEFAULT_ISSUE_TITLE
from issue_intake.core import (
    ContextUnavailableException,
    TrackerException,
)
from issue_intake.shared.infrastructure.logging import get_logger, log_latency
from issue_intake.triage.application.dto import IssueSuggestion
from issue_intake.triage.domain import (
    Attachment,
    ClassifiedAttachments,
    ContextSnapshot,
    DeterministicRouter,
    DispatchOutcome,
    IssueDraft,
    IssuePromptBuilder,
    IssueRef,
    ResolvedRouting,
    RoutingDecision,
    StoredAttachment,
    Submission,
    classify_attachments,
)

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class ILLMClient(ABC):
    """Interface for model operations."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        operation: str = "chat_completion",
        response_format: Optional[dict] = None
    ):
        """Generate chat completion; result exposes ``.content``."""

    @abstractmethod
    async def transcribe(self, data: bytes, filename: str, content_type: str) -> str:
        """Speech-to-text for one attachment."""


class ITrackerGateway(ABC):
    """Interface for issue tracker operations."""

    @abstractmethod
    async def get_context(self, recent_issues: int) -> ContextSnapshot:
        """List teams, projects, users and recent issues."""

    @abstractmethod
    async def search_issues(self, term: str) -> List[IssueRef]:
        """Full-text search, in the tracker's ranking order."""

    @abstractmethod
    async def create_issue(
        self,
        title: str,
        description: str,
        team_id: str,
        project_id: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_id: Optional[str] = None
    ) -> IssueRef:
        """Create an issue."""

    @abstractmethod
    async def add_comment(self, issue_id: str, body: str) -> None:
        """Comment on an issue."""

    @abstractmethod
    async def update_issue(
        self,
        issue_id: str,
        assignee_id: Optional[str] = None,
        project_id: Optional[str] = None,
        priority: Optional[int] = None
    ) -> None:
        """Update routing fields of an issue."""


class IAttachmentStore(ABC):
    """Interface for attachment storage."""

    @abstractmethod
    async def upload_many(self, attachments: Sequence[Attachment]) -> List[StoredAttachment]:
        """Store all attachments; results keep the input order."""


# ========== Application Services ==========

class TranscriptExtractor:
    """
    Best-effort transcripts for audio/video attachments.

    A failed transcription is logged and left out; it never fails the run.
    """

    def __init__(self, llm_client: ILLMClient, max_chars: int = 4000):
        self._llm = llm_client
        self._max_chars = max_chars

    async def _transcribe_one(self, attachment: Attachment) -> Optional[str]:
        try:
            text = await self._llm.transcribe(attachment.data, attachment.filename, attachment.content_type)
        except Exception as e:
            logger.warning(
                "Transcription skipped",
                extra={
                    "attachment": attachment.filename,
                    "error_type": type(e).__name__,
                    "error": str(e)
                }
            )
            return None
        if not text or not text.strip():
            return None
        return f"[Transcript {attachment.filename}]\n{text.strip()}"

    async def extract(self, attachments: Sequence[Attachment]) -> str:
        """
        Transcribe all attachments concurrently.

        Returns:
            Transcript sections joined in attachment order, hard-capped at
            ``max_chars`` characters (empty string if none succeeded)
        """
        if not attachments:
            return ""

        sections = await asyncio.gather(*(self._transcribe_one(a) for a in attachments))
        transcript = "\n".join(section for section in sections if section)
        return transcript[:self._max_chars]


class ContextSnapshotLoader:
    """Fetches the tracker context a triage run resolves names against."""

    def __init__(self, tracker: ITrackerGateway, recent_issues: int = 20):
        self._tracker = tracker
        self._recent_issues = recent_issues

    async def load(self) -> ContextSnapshot:
        """
        Raises:
            ContextUnavailableException: If the tracker cannot be listed or
                has no teams to route to
        """
        try:
            snapshot = await self._tracker.get_context(self._recent_issues)
        except ContextUnavailableException:
            raise
        except TrackerException as e:
            raise ContextUnavailableException(f"cannot list teams, projects and users ({e.reason})", e.details)

        if not snapshot.teams:
            raise ContextUnavailableException("workspace has no teams to route issues to")

        logger.info(
            "Context snapshot loaded",
            extra={
                "teams": len(snapshot.teams),
                "projects": len(snapshot.projects),
                "users": len(snapshot.users),
                "recent_issues": len(snapshot.recent_issues)
            }
        )
        return snapshot


def _strip_fence(text: str) -> str:
    """Unwrap output that is entirely one ```/```json block."""
    body = text[3:]
    first_newline = body.find("\n")
    # opening line may carry a language tag
    body = body[first_newline + 1:] if first_newline != -1 else body.removeprefix("json")
    body = body.rstrip()
    if body.endswith("```"):
        body = body[:-3]
    return body.strip()


class IssueSynthesizer:
    """
    Model-backed drafting of a structured issue.

    Malformed or missing structured output degrades to the raw input; only
    a failed model call (LLMException) propagates.
    """

    def __init__(self, llm_client: ILLMClient, temperature: float = 0.2, max_tokens: int = 1500):
        self._llm = llm_client
        self._temperature = temperature
        self._max_tokens = max_tokens

    @staticmethod
    def parse_suggestion(content: Optional[str]) -> Optional[IssueSuggestion]:
        """Parse the model output; None when it is not a valid issue object."""
        text = (content or "").strip()
        try:
            return IssueSuggestion.model_validate_json(text)
        except ValidationError as e:
            if text.startswith("```"):
                return IssueSynthesizer.parse_suggestion(_strip_fence(text))

            logger.warning(
                "Classifier output rejected, falling back to raw submission",
                extra={"error_count": e.error_count(), "content_preview": text[:200]}
            )
            return None

    @staticmethod
    def build_draft(
        suggestion: Optional[IssueSuggestion],
        title: Optional[str] = None,
        details: Optional[str] = None
    ) -> IssueDraft:
        """Apply the fallback rules for every field."""
        if suggestion is None:
            return IssueDraft(title=title or DEFAULT_ISSUE_TITLE, description=details or "")

        return IssueDraft(
            title=suggestion.title or title or DEFAULT_ISSUE_TITLE,
            description=suggestion.description or details or "",
            team_name=suggestion.team_name,
            project_name=suggestion.project_name,
            assignee_email=suggestion.assignee_email,
            priority=suggestion.priority,
            category=suggestion.category,
            severity=suggestion.severity
        )

    async def synthesize(
        self,
        snapshot: ContextSnapshot,
        classified: ClassifiedAttachments,
        transcript: str = "",
        title: Optional[str] = None,
        details: Optional[str] = None,
        category: Optional[str] = None,
        severity: Optional[str] = None
    ) -> IssueDraft:
        user_prompt = IssuePromptBuilder.build_prompt(
            snapshot,
            title=title,
            details=details,
            category=category,
            severity=severity,
            image_filenames=classified.image_filenames,
            non_image_filenames=classified.non_image_filenames,
            transcript=transcript
        )
        messages = [
            {"role": "system", "content": IssuePromptBuilder.get_system_prompt()},
            {"role": "user", "content": user_prompt}
        ]

        response = await self._llm.chat_completion(
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            operation="synthesis",
            response_format=IssuePromptBuilder.response_format()
        )

        draft = self.build_draft(self.parse_suggestion(response.content), title=title, details=details)
        logger.info(
            "Issue drafted",
            extra={
                "title": draft.title,
                "suggested_team": draft.team_name,
                "suggested_project": draft.project_name,
                "priority": draft.priority,
                "category": draft.category,
                "severity": draft.severity
            }
        )
        return draft


class RoutingResolver:
    """
    Binds routing names to tracker ids.

    The router's team always beats the model's; the project comes only from
    the model. Misses fall back silently (first team, or None).
    """

    def resolve(
        self,
        decision: RoutingDecision,
        draft: IssueDraft,
        snapshot: ContextSnapshot
    ) -> ResolvedRouting:
        if not snapshot.teams:
            raise ContextUnavailableException("workspace has no teams to route issues to")

        team_name = decision.team_name or draft.team_name
        team = snapshot.find_team(team_name) if team_name else None
        if team is None:
            logger.debug("Team unresolved, using first team", extra={"team_name": team_name})
            team = snapshot.teams[0]

        if decision.assignee_name:
            assignee = snapshot.find_user_by_name_prefix(decision.assignee_name)
        elif draft.assignee_email:
            assignee = snapshot.find_user_by_email(draft.assignee_email)
        else:
            assignee = None

        project = snapshot.find_project(draft.project_name) if draft.project_name else None

        return ResolvedRouting(
            team_id=team.id,
            project_id=project.id if project else None,
            assignee_id=assignee.id if assignee else None
        )


def _link_text(filename: str) -> str:
    name = PurePosixPath(filename.replace("\\", "/")).name or filename
    return name.replace("[", "\\[").replace("]", "\\]")


def render_attachment_links(attachments: Sequence[StoredAttachment]) -> str:
    """Markdown link block appended to issue bodies and merge comments."""
    if not attachments:
        return ""
    links = "\n".join(f"- [{_link_text(a.filename)}]({a.url})" for a in attachments)
    return f"\n\nAttachments:\n{links}"


class IssueDispatcher:
    """
    Merges into an existing issue with the same title, or creates a new one.

    Dedup is exact title equality (case-insensitive) against the first
    matching search hit.
    """

    MERGE_COMMENT = (
        "New submission merged into this issue.\n\n"
        "Reporter: {reporter}\n\n"
        "Details:\n{details}"
    )

    def __init__(self, tracker: ITrackerGateway):
        self._tracker = tracker

    async def find_duplicate(self, title: str) -> Optional[IssueRef]:
        wanted = title.lower()
        candidates = await self._tracker.search_issues(title)
        return next((c for c in candidates if (c.title or "").lower() == wanted), None)

    async def dispatch(
        self,
        submission: Submission,
        draft: IssueDraft,
        routing: ResolvedRouting,
        attachments: Sequence[StoredAttachment] = ()
    ) -> DispatchOutcome:
        links = render_attachment_links(attachments)
        duplicate = await self.find_duplicate(draft.title)

        if duplicate:
            body = self.MERGE_COMMENT.format(
                reporter=submission.reporter,
                details=submission.details or "(none)"
            ) + links
            await self._tracker.add_comment(duplicate.id, body)

            if routing.assignee_id:
                await self._tracker.update_issue(
                    duplicate.id,
                    assignee_id=routing.assignee_id,
                    project_id=routing.project_id,
                    priority=draft.priority
                )

            logger.info(
                "Submission merged into existing issue",
                extra={"issue_id": duplicate.identifier, "reassigned": bool(routing.assignee_id)}
            )
            return DispatchOutcome(
                duplicate=True,
                issue_id=duplicate.identifier or duplicate.id,
                issue_url=duplicate.url or ""
            )

        description = f"{draft.description}\n\nSubmitted by: {submission.reporter}{links}"
        issue = await self._tracker.create_issue(
            title=draft.title,
            description=description,
            team_id=routing.team_id,
            project_id=routing.project_id,
            priority=draft.priority,
            assignee_id=routing.assignee_id
        )
        return DispatchOutcome(
            duplicate=False,
            issue_id=issue.identifier or issue.id,
            issue_url=issue.url or ""
        )


class TriagePipeline:
    """
    End-to-end triage of one submission.

    Context snapshot, transcription and attachment uploads run concurrently;
    everything is joined before dispatch so a failed upload means no issue
    is created. Nothing is retried.
    """

    def __init__(
        self,
        router_provider: Callable[[], DeterministicRouter],
        snapshot_loader: ContextSnapshotLoader,
        transcript_extractor: TranscriptExtractor,
        synthesizer: IssueSynthesizer,
        attachment_store: IAttachmentStore,
        dispatcher: IssueDispatcher,
        resolver: Optional[RoutingResolver] = None
    ):
        self._router_provider = router_provider
        self._snapshot_loader = snapshot_loader
        self._transcripts = transcript_extractor
        self._synthesizer = synthesizer
        self._store = attachment_store
        self._dispatcher = dispatcher
        self._resolver = resolver or RoutingResolver()

    async def _upload(self, attachments: Sequence[Attachment]) -> List[StoredAttachment]:
        if not attachments:
            return []
        return await self._store.upload_many(attachments)

    @staticmethod
    async def _gather(*coros):
        """Run stages concurrently; the first failure cancels the rest."""
        tasks = [asyncio.ensure_future(coro) for coro in coros]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def run(self, submission: Submission) -> DispatchOutcome:
        classified = classify_attachments(submission.attachments)

        with log_latency(logger, "triage_gather", attachments=len(submission.attachments)):
            snapshot, transcript, stored = await self._gather(
                self._snapshot_loader.load(),
                self._transcripts.extract(classified.audio_video),
                self._upload(submission.attachments),
            )

        with log_latency(logger, "issue_synthesis"):
            draft = await self._synthesizer.synthesize(
                snapshot,
                classified,
                transcript=transcript,
                details=submission.details
            )

        decision = self._router_provider().route(details=submission.details)
        routing = self._resolver.resolve(decision, draft, snapshot)
        logger.info(
            "Routing resolved",
            extra={
                "rule_team": decision.team_name,
                "rule_assignee": decision.assignee_name,
                "team_id": routing.team_id,
                "project_id": routing.project_id,
                "assignee_id": routing.assignee_id
            }
        )

        return await self._dispatcher.dispatch(submission, draft, routing, stored)
