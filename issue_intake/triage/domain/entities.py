"""
Triage Domain Entities
======================

Domain entities for the submission triage pipeline.

Contains pure Python business objects: the incoming submission, the
tracker context it is resolved against, and the intermediate and final
decisions of a triage run.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from issue_intake.config import ANONYMOUS_REPORTER


@dataclass(frozen=True)
class Attachment:
    """A file part of a submission."""
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Submission:
    """
    One form submission.

    Immutable for the life of a triage run.
    """
    reporter_name: Optional[str] = None
    details: Optional[str] = None
    attachments: Tuple[Attachment, ...] = ()

    @property
    def reporter(self) -> str:
        """Reporter name for issue bodies."""
        return self.reporter_name or ANONYMOUS_REPORTER


@dataclass(frozen=True)
class Team:
    id: str
    name: str


@dataclass(frozen=True)
class Project:
    id: str
    name: str


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: Optional[str] = None


@dataclass(frozen=True)
class RecentIssue:
    id: str
    identifier: Optional[str] = None
    title: Optional[str] = None


@dataclass
class ContextSnapshot:
    """
    Point-in-time view of the tracker's teams, projects and users.

    Names are matched case-insensitively; ids are opaque.
    """
    teams: List[Team] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    recent_issues: List[RecentIssue] = field(default_factory=list)

    def find_team(self, name: str) -> Optional[Team]:
        """Exact, case-insensitive team name match."""
        wanted = name.lower()
        return next((t for t in self.teams if t.name.lower() == wanted), None)

    def find_project(self, name: str) -> Optional[Project]:
        """Exact, case-insensitive project name match."""
        wanted = name.lower()
        return next((p for p in self.projects if p.name.lower() == wanted), None)

    def find_user_by_name_prefix(self, prefix: str) -> Optional[User]:
        """First user whose display name starts with ``prefix`` (case-insensitive)."""
        wanted = prefix.lower()
        return next((u for u in self.users if (u.name or "").lower().startswith(wanted)), None)

    def find_user_by_email(self, email: str) -> Optional[User]:
        """Exact, case-insensitive email match."""
        wanted = email.lower()
        return next((u for u in self.users if (u.email or "").lower() == wanted), None)


@dataclass(frozen=True)
class RoutingDecision:
    """Team/assignee suggestion from exactly one routing rule or the default."""
    team_name: Optional[str] = None
    assignee_name: Optional[str] = None


@dataclass
class IssueDraft:
    """
    Structured issue produced by the synthesizer.

    ``title`` and ``description`` are always populated; the routing fields
    are advisory and may be absent.
    """
    title: str
    description: str
    team_name: Optional[str] = None
    project_name: Optional[str] = None
    assignee_email: Optional[str] = None
    priority: Optional[int] = None
    category: Optional[str] = None
    severity: Optional[str] = None


@dataclass(frozen=True)
class ResolvedRouting:
    """Tracker ids bound from routing names. ``team_id`` is never empty."""
    team_id: str
    project_id: Optional[str] = None
    assignee_id: Optional[str] = None


@dataclass(frozen=True)
class StoredAttachment:
    """An attachment after upload, paired with its original filename."""
    filename: str
    url: str
    key: str


@dataclass(frozen=True)
class IssueRef:
    """Reference to an issue in the tracker."""
    id: str
    identifier: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class DispatchOutcome:
    """Terminal result of a triage run."""
    duplicate: bool
    issue_id: str
    issue_url: str
