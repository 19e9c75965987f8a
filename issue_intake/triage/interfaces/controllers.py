"""
Triage Controllers (API Routes)
================================

FastAPI routes for the submission intake form.

Controllers delegate to the triage pipeline held in app state.
"""

import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from issue_intake.core import ApplicationException, ConfigurationException
from issue_intake.shared.infrastructure.grafana import get_grafana_exporter
from issue_intake.shared.infrastructure.logging import get_logger
from issue_intake.triage.application import (
    ErrorResponse,
    RoutingPreviewResponse,
    SubmitResponse,
    TriagePipeline,
)
from issue_intake.triage.domain import Attachment, DeterministicRouter, Submission

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Submission Triage"])

DEFAULT_CONTENT_TYPE = "application/octet-stream"


# ========== Example payloads for Swagger ==========

SUBMIT_RESPONSE_EXAMPLE = {
    "duplicate": False,
    "issueId": "CX-42",
    "issueUrl": "https://linear.app/acme/issue/CX-42/customer-wants-to-cancel"
}

PREVIEW_RESPONSE_EXAMPLE = {
    "teamName": "Customer Experience (CX)",
    "assigneeName": "Hamza"
}


# ========== Dependencies ==========

def get_triage_pipeline(request: Request) -> TriagePipeline:
    """Get the triage pipeline from app state."""
    pipeline = getattr(request.app.state, "triage_pipeline", None)
    if pipeline is None:
        raise ConfigurationException(
            "Triage pipeline not available - OpenAI or Linear credentials not configured"
        )
    return pipeline


def get_router(request: Request) -> DeterministicRouter:
    """Router for the currently loaded rule table."""
    rules_manager = getattr(request.app.state, "rules_manager", None)
    if rules_manager is None:
        return DeterministicRouter()
    return rules_manager.router


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


async def _read_attachments(files: Optional[List[UploadFile]]) -> List[Attachment]:
    attachments = []
    for upload in files or []:
        data = await upload.read()
        if not upload.filename and not data:
            continue
        attachments.append(Attachment(
            filename=upload.filename or "file",
            content_type=upload.content_type or DEFAULT_CONTENT_TYPE,
            data=data
        ))
    return attachments


# ========== Route Handlers ==========

@router.post(
    "/submit",
    response_model=SubmitResponse,
    response_model_by_alias=True,
    summary="Turn a form submission into a Linear issue",
    description="""
    Accepts free text plus any number of files and either creates a new
    Linear issue or merges the submission into an existing issue with the
    same title.

    **Pipeline**:
    1. Attachments are uploaded and audio/video is transcribed
    2. The model drafts a title, description, priority and routing hints
    3. Keyword rules pick the team and assignee
    4. An issue with the same title receives a comment instead of a duplicate

    Every failure returns HTTP 500 with `{"error": "..."}`.
    """,
    responses={
        200: {
            "description": "Issue created or submission merged",
            "content": {"application/json": {"example": SUBMIT_RESPONSE_EXAMPLE}}
        },
        500: {"model": ErrorResponse, "description": "Triage run failed"}
    }
)
async def submit(
    request: Request,
    reporter_name: Optional[str] = Form(None, alias="reporterName"),
    details: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    pipeline: TriagePipeline = Depends(get_triage_pipeline)
):
    start_time = time.perf_counter()
    attachments = await _read_attachments(files)
    submission = Submission(
        reporter_name=_blank_to_none(reporter_name),
        details=_blank_to_none(details),
        attachments=tuple(attachments)
    )

    logger.info(
        "Triaging submission",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "has_details": submission.details is not None,
            "attachments": len(attachments),
            "attachment_bytes": sum(a.size for a in attachments)
        }
    )

    try:
        outcome = await pipeline.run(submission)
    except ApplicationException:
        raise
    except Exception as e:
        logger.exception("Unexpected triage failure", extra={"error_type": type(e).__name__})
        raise ApplicationException(str(e) or "Server error") from e

    latency_ms = int((time.perf_counter() - start_time) * 1000)
    logger.info(
        "Submission triaged",
        extra={
            "issue_id": outcome.issue_id,
            "duplicate": outcome.duplicate,
            "processing_time_ms": latency_ms
        }
    )

    exporter = get_grafana_exporter()
    if exporter.is_enabled():
        await exporter.export_dispatch_metrics(
            duplicate=outcome.duplicate,
            latency_ms=latency_ms,
            attachments=len(attachments)
        )

    return SubmitResponse.from_domain(outcome)


@router.get(
    "/routing/preview",
    response_model=RoutingPreviewResponse,
    response_model_by_alias=True,
    summary="Preview the keyword routing decision",
    description="Runs the deterministic router on the given text without touching Linear.",
    responses={
        200: {
            "description": "Routing decision",
            "content": {"application/json": {"example": PREVIEW_RESPONSE_EXAMPLE}}
        }
    }
)
async def preview_routing(
    text: str = Query("", description="Submission text"),
    category: Optional[str] = Query(None, description="bug | feature | question | task"),
    severity: Optional[str] = Query(None, description="critical | high | medium | low"),
    router_: DeterministicRouter = Depends(get_router)
):
    decision = router_.route(details=text, category=category, severity=severity)
    return RoutingPreviewResponse.from_domain(decision)
