"""
Triage Module
=============

Bounded Context for turning intake-form submissions into Linear issues.

Responsibilities:
- Classify attachments and transcribe audio/video
- Draft a structured issue with the model
- Route deterministically by keyword rules
- Merge duplicates by title or create a new issue with attachment links
"""

__version__ = "1.0.0"
