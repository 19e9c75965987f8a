"""
Triage Domain Layer
===================

Domain layer for the submission triage pipeline.

Contains:
- Entities: Submission, ContextSnapshot, IssueDraft, ResolvedRouting, DispatchOutcome
- Attachment classification by media type
- Deterministic keyword routing and its configuration
- Prompt building for issue synthesis

This layer is framework-agnostic and contains pure business logic.
"""

from issue_intake.triage.domain.entities import (
    Attachment,
    Submission,
    Team,
    Project,
    User,
    RecentIssue,
    ContextSnapshot,
    RoutingDecision,
    IssueDraft,
    ResolvedRouting,
    StoredAttachment,
    IssueRef,
    DispatchOutcome,
)
from issue_intake.triage.domain.attachments import (
    ClassifiedAttachments,
    classify_attachments,
    media_kind,
)
from issue_intake.triage.domain.value_objects import (
    RouteTarget,
    RoutingRule,
    RoutingConfig,
    DEFAULT_RULES,
)
from issue_intake.triage.domain.routing import DeterministicRouter
from issue_intake.triage.domain.prompts import IssuePromptBuilder, ISSUE_SCHEMA

__all__ = [
    "Attachment",
    "Submission",
    "Team",
    "Project",
    "User",
    "RecentIssue",
    "ContextSnapshot",
    "RoutingDecision",
    "IssueDraft",
    "ResolvedRouting",
    "StoredAttachment",
    "IssueRef",
    "DispatchOutcome",
    "ClassifiedAttachments",
    "classify_attachments",
    "media_kind",
    "RouteTarget",
    "RoutingRule",
    "RoutingConfig",
    "DEFAULT_RULES",
    "DeterministicRouter",
    "IssuePromptBuilder",
    "ISSUE_SCHEMA",
]
