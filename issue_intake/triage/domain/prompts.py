"""
Issue Synthesis Prompts
=======================

All prompt and response-schema logic for the issue synthesizer in one place.
"""

import json
from typing import List, Optional

from issue_intake.config import ISSUE_CATEGORIES, SEVERITY_LEVELS
from issue_intake.triage.domain.entities import ContextSnapshot


ISSUE_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "teamName": {"type": "string"},
        "projectName": {"type": "string"},
        "assigneeEmail": {"type": "string"},
        "priority": {"type": "integer"},
        "category": {"type": "string"},
        "severity": {"type": "string"},
    },
    "required": [
        "title",
        "description",
        "teamName",
        "projectName",
        "assigneeEmail",
        "priority",
        "category",
        "severity",
    ],
}


class IssuePromptBuilder:
    """Builds the messages and response format for issue synthesis."""

    SYSTEM_PROMPT = f"""You are an assistant that converts mixed bug/request submissions (text, images, audio, video) into high-quality Linear issues.
Given the submission details and the available Linear teams, projects and users, infer the best team, project, assignee and priority.
Output a strict JSON object with fields: title (you must create it), description, teamName, projectName, assigneeEmail, priority (1-4, 1 is urgent), category (one of {'|'.join(ISSUE_CATEGORIES)}), severity (one of {'|'.join(SEVERITY_LEVELS)}).
Use an empty string for any name or email you cannot infer."""

    @classmethod
    def get_system_prompt(cls) -> str:
        """Get the system prompt for issue synthesis."""
        return cls.SYSTEM_PROMPT

    @classmethod
    def response_format(cls) -> dict:
        """OpenAI structured-output format; the model must emit exactly ISSUE_SCHEMA."""
        return {
            "type": "json_schema",
            "json_schema": {"name": "Issue", "strict": True, "schema": ISSUE_SCHEMA},
        }

    @classmethod
    def build_prompt(
        cls,
        snapshot: ContextSnapshot,
        title: Optional[str] = None,
        details: Optional[str] = None,
        category: Optional[str] = None,
        severity: Optional[str] = None,
        image_filenames: Optional[List[str]] = None,
        non_image_filenames: Optional[List[str]] = None,
        transcript: str = ""
    ) -> str:
        """Build the user message from the submission and tracker context."""
        lines = []
        if title:
            lines.append(f"Title: {title}")
        if details:
            lines.append(f"Details: {details}")
        if category:
            lines.append(f"Category: {category}")
        if severity:
            lines.append(f"Severity: {severity}")
        if image_filenames:
            lines.append(f"Image uploads: {', '.join(image_filenames)}")
        if non_image_filenames:
            lines.append(f"Non-image uploads: {', '.join(non_image_filenames)}")
        if transcript.strip():
            lines.append(f"Transcript(s):\n{transcript}")

        lines.append(f"Linear teams: {json.dumps([{'id': t.id, 'name': t.name} for t in snapshot.teams])}")
        lines.append(f"Linear projects: {json.dumps([{'id': p.id, 'name': p.name} for p in snapshot.projects])}")
        lines.append(
            "Linear users: "
            + json.dumps([{"id": u.id, "name": u.name, "email": u.email} for u in snapshot.users])
        )
        if snapshot.recent_issues:
            lines.append(
                "Recent issues: "
                + json.dumps([
                    {"id": i.id, "identifier": i.identifier, "title": i.title}
                    for i in snapshot.recent_issues
                ])
            )
        return "\n".join(lines)
