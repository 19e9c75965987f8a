"""
Triage Application Layer
=========================

Application layer for the submission triage pipeline.

Contains:
- Services: pipeline stages and their orchestration
- DTOs: Data transfer objects for API serialization and model output
"""

from issue_intake.triage.application.dto import (
    IssueSuggestion,
    SubmitResponse,
    ErrorResponse,
    RoutingPreviewResponse,
)
from issue_intake.triage.application.services import (
    ILLMClient,
    ITrackerGateway,
    IAttachmentStore,
    TranscriptExtractor,
    ContextSnapshotLoader,
    IssueSynthesizer,
    RoutingResolver,
    IssueDispatcher,
    TriagePipeline,
    render_attachment_links,
)

__all__ = [
    # DTOs
    "IssueSuggestion",
    "SubmitResponse",
    "ErrorResponse",
    "RoutingPreviewResponse",
    # Interfaces
    "ILLMClient",
    "ITrackerGateway",
    "IAttachmentStore",
    # Services
    "TranscriptExtractor",
    "ContextSnapshotLoader",
    "IssueSynthesizer",
    "RoutingResolver",
    "IssueDispatcher",
    "TriagePipeline",
    "render_attachment_links",
]
