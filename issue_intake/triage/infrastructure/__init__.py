"""
Triage Infrastructure Layer
============================

Infrastructure implementations for the triage module.

Contains:
- External: adapters for the LLM, Linear and S3, plus pipeline wiring
- Rules: YAML routing table with hot reload
"""

from issue_intake.triage.infrastructure.external import (
    LLMClientAdapter,
    LinearTrackerAdapter,
    S3AttachmentStore,
    create_triage_pipeline,
)
from issue_intake.triage.infrastructure.rules import RoutingRulesManager

__all__ = [
    "LLMClientAdapter",
    "LinearTrackerAdapter",
    "S3AttachmentStore",
    "create_triage_pipeline",
    "RoutingRulesManager",
]
