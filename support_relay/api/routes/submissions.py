"""
Submission API Routes

Webhook receiving form-submission events from the host form system.
The endpoint always acknowledges the submission: spam verdicts and
delivery failures are recorded, never surfaced as request errors.
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from support_relay.api.dependencies import get_pipeline
from support_relay.api.models.submissions import SubmissionEvent, SubmissionReceipt
from support_relay.models import FormSubmission
from support_relay.pipeline import SupportFormPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.post(
    "",
    response_model=SubmissionReceipt,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Receive a form submission"
)
async def receive_submission(
    event: SubmissionEvent,
    request: Request,
    pipeline: SupportFormPipeline = Depends(get_pipeline)
):
    """
    Run a form submission through the support pipeline.

    Args:
        event: Form handle and raw field values

    Returns:
        Receipt with the pipeline outcome
    """
    submission = FormSubmission(
        form_handle=event.form_handle,
        fields=event.fields,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    try:
        result = await pipeline.handle(submission)
    except Exception as e:
        logger.error(f"Support pipeline failed for form {event.form_handle}: {e}", exc_info=True)
        return SubmissionReceipt(outcome="error")

    return SubmissionReceipt(outcome=result.status.value, record_id=result.record_id)
