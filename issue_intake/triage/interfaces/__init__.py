"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for the triage module.

Contains:
- Controllers: FastAPI route handlers
"""

from issue_intake.triage.interfaces.controllers import router as triage_router

__all__ = ["triage_router"]
