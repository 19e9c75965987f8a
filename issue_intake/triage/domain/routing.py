"""
Deterministic Routing
=====================

Keyword routing whose team choice overrides the model's suggestion.
"""

from typing import Optional

from issue_intake.config import IssueCategory
from issue_intake.triage.domain.entities import RoutingDecision
from issue_intake.triage.domain.value_objects import RoutingConfig, RouteTarget


def _decision(target: RouteTarget) -> RoutingDecision:
    return RoutingDecision(team_name=target.team, assignee_name=target.assignee)


class DeterministicRouter:
    """
    Maps submission text and optional hints to a (team, assignee) pair.

    Evaluation order:
    1. category ``bug`` / ``question`` short-circuits
    2. first rule in table order whose substrings all occur in the text
    3. escalation route for critical/high severity
    4. default route

    Always returns a fully populated decision; never raises.
    """

    def __init__(self, config: Optional[RoutingConfig] = None):
        self._config = config or RoutingConfig()

    @property
    def config(self) -> RoutingConfig:
        return self._config

    def route(
        self,
        title: Optional[str] = None,
        details: Optional[str] = None,
        category: Optional[str] = None,
        severity: Optional[str] = None
    ) -> RoutingDecision:
        text = f"{title or ''} {details or ''}".lower()
        category = (category or "").lower()

        if category == IssueCategory.BUG:
            return _decision(self._config.bug_route)
        if category == IssueCategory.QUESTION:
            return _decision(self._config.question_route)

        for rule in self._config.rules:
            if rule.matches(text):
                return _decision(rule)

        if (severity or "").lower() in self._config.escalating_severities:
            return _decision(self._config.escalation_route)
        return _decision(self._config.default_route)
