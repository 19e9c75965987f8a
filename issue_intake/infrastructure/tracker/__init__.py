"""
Issue Tracker Infrastructure
=============================

Async client for the Linear GraphQL API.

Only the operations the triage pipeline needs are implemented:
listing teams/projects/users (plus recent issues), full-text issue search,
issue creation, commenting and updating.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from issue_intake.config import settings
from issue_intake.core import ConfigurationException, TrackerException
from issue_intake.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


CONTEXT_QUERY = """
query IntakeContext($recent: Int!, $withIssues: Boolean!) {
  viewer { id name }
  teams(first: 250) { nodes { id name } }
  projects(first: 250) { nodes { id name } }
  users(first: 250) { nodes { id name email } }
  issues(first: $recent) @include(if: $withIssues) { nodes { id identifier title } }
}
"""

SEARCH_QUERY = """
query SearchIssues($term: String!) {
  searchIssues(term: $term, first: 25) { nodes { id identifier title url } }
}
"""

CREATE_ISSUE_MUTATION = """
mutation IssueCreate($input: IssueCreateInput!) {
  issueCreate(input: $input) { success issue { id identifier title url } }
}
"""

CREATE_COMMENT_MUTATION = """
mutation CommentCreate($input: CommentCreateInput!) {
  commentCreate(input: $input) { success comment { id } }
}
"""

UPDATE_ISSUE_MUTATION = """
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) { success }
}
"""


@dataclass
class TrackerIssue:
    """Issue reference returned by the tracker."""
    id: str
    identifier: Optional[str]
    title: Optional[str]
    url: Optional[str]


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset fields so Linear keeps its own defaults."""
    return {key: value for key, value in values.items() if value not in (None, "")}


class LinearClient:
    """
    Linear GraphQL client.

    Every failure (transport, HTTP status, GraphQL error, unsuccessful
    mutation) is raised as TrackerException.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._api_key = api_key or settings.linear_api_key
        if not self._api_key:
            raise ConfigurationException("Linear API key not configured")

        self._api_url = api_url or settings.linear_api_url
        self._timeout = timeout or settings.tracker_timeout_seconds
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "Authorization": self._api_key,
                    "Content-Type": "application/json",
                }
            )
        return self._http_client

    async def _execute(self, query: str, variables: Dict[str, Any], operation: str) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(
                self._api_url,
                json={"query": query, "variables": variables}
            )
        except httpx.HTTPError as e:
            raise TrackerException(f"{operation} request failed: {e}")

        if response.status_code in (401, 403):
            raise TrackerException(
                f"{operation} rejected: authentication failed",
                details={"status_code": response.status_code}
            )

        try:
            body = response.json()
        except ValueError:
            raise TrackerException(
                f"{operation} returned a non-JSON response",
                details={"status_code": response.status_code}
            )

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            message = errors[0].get("message", "unknown error")
            raise TrackerException(f"{operation} failed: {message}", details={"errors": errors})

        if response.status_code >= 400:
            raise TrackerException(
                f"{operation} failed with HTTP {response.status_code}",
                details={"status_code": response.status_code}
            )

        return body.get("data") or {}

    async def list_context(self, recent_issues: int = 20) -> Dict[str, List[dict]]:
        """
        List teams, projects, users and the most recent issues.

        Returns:
            Dict with ``teams``, ``projects``, ``users`` and ``issues`` node lists
        """
        data = await self._execute(
            CONTEXT_QUERY,
            {"recent": max(recent_issues, 1), "withIssues": recent_issues > 0},
            "listContext"
        )
        return {
            "teams": (data.get("teams") or {}).get("nodes", []),
            "projects": (data.get("projects") or {}).get("nodes", []),
            "users": (data.get("users") or {}).get("nodes", []),
            "issues": (data.get("issues") or {}).get("nodes", []),
        }

    async def search_issues(self, term: str) -> List[TrackerIssue]:
        """Full-text issue search, in the tracker's ranking order."""
        data = await self._execute(SEARCH_QUERY, {"term": term}, "searchIssues")
        nodes = (data.get("searchIssues") or {}).get("nodes", [])
        return [
            TrackerIssue(
                id=node["id"],
                identifier=node.get("identifier"),
                title=node.get("title"),
                url=node.get("url")
            )
            for node in nodes
        ]

    async def create_issue(
        self,
        title: str,
        description: str,
        team_id: str,
        project_id: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_id: Optional[str] = None
    ) -> TrackerIssue:
        """Create an issue and return its reference."""
        issue_input = {"title": title, "description": description, "teamId": team_id}
        issue_input.update(_compact({
            "projectId": project_id,
            "priority": priority,
            "assigneeId": assignee_id,
        }))

        data = await self._execute(CREATE_ISSUE_MUTATION, {"input": issue_input}, "issueCreate")
        payload = data.get("issueCreate") or {}
        issue = payload.get("issue")
        if not payload.get("success") or not issue:
            raise TrackerException("Failed to create Linear issue")

        logger.info(
            "Linear issue created",
            extra={"issue_id": issue.get("identifier"), "team_id": team_id}
        )
        return TrackerIssue(
            id=issue["id"],
            identifier=issue.get("identifier"),
            title=issue.get("title"),
            url=issue.get("url")
        )

    async def add_comment(self, issue_id: str, body: str) -> Optional[str]:
        """Comment on an issue; returns the comment id."""
        data = await self._execute(
            CREATE_COMMENT_MUTATION,
            {"input": {"issueId": issue_id, "body": body}},
            "commentCreate"
        )
        payload = data.get("commentCreate") or {}
        if not payload.get("success"):
            raise TrackerException(f"Failed to comment on issue {issue_id}")
        return (payload.get("comment") or {}).get("id")

    async def update_issue(
        self,
        issue_id: str,
        assignee_id: Optional[str] = None,
        project_id: Optional[str] = None,
        priority: Optional[int] = None
    ) -> None:
        """Update routing fields; unset arguments are left untouched."""
        update_input = _compact({
            "assigneeId": assignee_id,
            "projectId": project_id,
            "priority": priority,
        })
        if not update_input:
            return

        data = await self._execute(
            UPDATE_ISSUE_MUTATION,
            {"id": issue_id, "input": update_input},
            "issueUpdate"
        )
        if not (data.get("issueUpdate") or {}).get("success"):
            raise TrackerException(f"Failed to update issue {issue_id}")

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
