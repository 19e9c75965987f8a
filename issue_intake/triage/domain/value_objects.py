"""
Triage Value Objects
====================

Immutable configuration for deterministic routing.

The keyword rule table is data: an ordered list of rules, each naming the
substrings that must all appear in the submission text and the
(team, assignee) pair it routes to. Table order is the only tie-break.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from issue_intake.config import ESCALATING_SEVERITIES


CX = "Customer Experience (CX)"
SALES = "Sales"
MARKETING = "Marketing"
PRODUCT_TECH = "Product/Tech"


class RouteTarget(BaseModel):
    """Team and assignee a submission is routed to."""
    model_config = ConfigDict(frozen=True)

    team: str = Field(..., min_length=1)
    assignee: str = Field(..., min_length=1)


class RoutingRule(RouteTarget):
    """Routes to (team, assignee) when every ``include`` substring is present."""

    include: List[str] = Field(..., min_length=1)

    @field_validator("include")
    @classmethod
    def normalize_include(cls, v: List[str]) -> List[str]:
        """Lower-case needles; empty needles would match everything."""
        needles = [needle.lower() for needle in v]
        if any(not needle for needle in needles):
            raise ValueError("rule substrings must be non-empty")
        return needles

    def matches(self, text: str) -> bool:
        """``text`` must already be lower-cased."""
        return all(needle in text for needle in self.include)


def _rule(include: List[str], team: str, assignee: str) -> RoutingRule:
    return RoutingRule(include=include, team=team, assignee=assignee)


DEFAULT_RULES: List[RoutingRule] = [
    # Customer Experience (CX)
    _rule(["cancel"], CX, "Hamza"),
    _rule(["churn"], CX, "Hamza"),
    _rule(["onboarding"], CX, "Tony"),
    _rule(["dns"], CX, "Tony"),
    _rule(["welcome call"], CX, "Ray"),
    _rule(["triage"], CX, "Ray"),
    _rule(["ticket", "support"], CX, "Ray"),
    _rule(["project", "dfy"], CX, "James"),
    _rule(["contractor"], CX, "James"),
    _rule(["client", "communication"], CX, "Phil"),

    # Sales
    _rule(["sales"], SALES, "Jack"),
    _rule(["demo", "call"], SALES, "Jack"),
    _rule(["trial"], SALES, "Jack"),

    # Marketing
    _rule(["ads"], MARKETING, "Stockton"),
    _rule(["facebook", "ads"], MARKETING, "John"),
    _rule(["youtube", "ads"], MARKETING, "John"),
    _rule(["content"], MARKETING, "Edwin"),
    _rule(["thumbnail"], MARKETING, "Edwin"),
    _rule(["email", "copy"], MARKETING, "Edwin"),

    # Product/Tech
    _rule(["bug"], PRODUCT_TECH, "Canyon"),
    _rule(["ai"], PRODUCT_TECH, "Canyon"),
    _rule(["backend"], PRODUCT_TECH, "Canyon"),
    _rule(["automation"], PRODUCT_TECH, "Canyon"),
    _rule(["stripe"], PRODUCT_TECH, "Canyon"),
    _rule(["checkout"], PRODUCT_TECH, "Canyon"),
]


class RoutingConfig(BaseModel):
    """
    Complete deterministic routing configuration.

    Category routes are checked before the rule table; the escalation and
    default routes apply only when no rule matches.
    """
    model_config = ConfigDict(frozen=True)

    bug_route: RouteTarget = RouteTarget(team=PRODUCT_TECH, assignee="Canyon")
    question_route: RouteTarget = RouteTarget(team=CX, assignee="Ray")
    escalation_route: RouteTarget = RouteTarget(team=PRODUCT_TECH, assignee="Canyon")
    default_route: RouteTarget = RouteTarget(team=CX, assignee="Nebuchadnezzar")
    escalating_severities: List[str] = Field(default_factory=lambda: list(ESCALATING_SEVERITIES))
    rules: List[RoutingRule] = Field(default_factory=lambda: list(DEFAULT_RULES))

    @field_validator("escalating_severities")
    @classmethod
    def normalize_severities(cls, v: List[str]) -> List[str]:
        return [severity.lower() for severity in v]
