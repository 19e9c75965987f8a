"""
Triage Application DTOs
========================

Data Transfer Objects for the triage API layer and for the model's
structured output.

Pydantic models for request/response validation.
"""

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from issue_intake.config import MIN_PRIORITY, MAX_PRIORITY
from issue_intake.triage.domain import DispatchOutcome, RoutingDecision


# ========== Model output ==========

class IssueSuggestion(BaseModel):
    """
    The classifier's structured answer.

    Unknown fields are rejected. Empty strings count as "no suggestion" and
    a priority outside 1..4 is dropped rather than failing the whole parse.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    team_name: Optional[str] = Field(None, alias="teamName")
    project_name: Optional[str] = Field(None, alias="projectName")
    assignee_email: Optional[str] = Field(None, alias="assigneeEmail")
    priority: Optional[int] = None
    category: Optional[str] = None
    severity: Optional[str] = None

    @field_validator(
        "title", "description", "team_name", "project_name",
        "assignee_email", "category", "severity",
        mode="before"
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("priority", mode="before")
    @classmethod
    def priority_in_range(cls, v: Any) -> Optional[int]:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            return None
        if v != int(v) or not MIN_PRIORITY <= v <= MAX_PRIORITY:
            return None
        return int(v)


# ========== Response DTOs ==========

class SubmitResponse(BaseModel):
    """Successful triage run."""
    model_config = ConfigDict(populate_by_name=True)

    duplicate: bool = Field(..., description="True when merged into an existing issue")
    issue_id: str = Field(..., alias="issueId", description="Tracker identifier, e.g. CX-42")
    issue_url: str = Field(..., alias="issueUrl")

    @classmethod
    def from_domain(cls, outcome: DispatchOutcome) -> "SubmitResponse":
        return cls(duplicate=outcome.duplicate, issue_id=outcome.issue_id, issue_url=outcome.issue_url)


class ErrorResponse(BaseModel):
    """Any failed triage run."""
    error: str


class RoutingPreviewResponse(BaseModel):
    """Deterministic routing decision for a piece of text."""
    model_config = ConfigDict(populate_by_name=True)

    team_name: Optional[str] = Field(None, alias="teamName")
    assignee_name: Optional[str] = Field(None, alias="assigneeName")

    @classmethod
    def from_domain(cls, decision: RoutingDecision) -> "RoutingPreviewResponse":
        return cls(team_name=decision.team_name, assignee_name=decision.assignee_name)
