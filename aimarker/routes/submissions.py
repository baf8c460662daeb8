"""
Submission Routes
Questions submitted for AI marking
"""

from fastapi import APIRouter, HTTPException, Request, status
import logging

from aimarker.models.schemas import ActivityAction, SubmissionSchema
from aimarker.services.activity_service import ActivityService
from aimarker.utils.dependencies import CurrentUser
from aimarker.utils.security import get_security_utils

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_QUESTION_LENGTH = 10


@router.post("/submit", response_model=dict)
async def submit_question(submission: SubmissionSchema, current_user: CurrentUser, request: Request):
    """
    Accept a question for marking

    The question is queued client-side; this records the submission
    and hands back an id to correlate feedback with.
    """
    if len(submission.question or "") < MIN_QUESTION_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Question must be at least 10 characters"
        )

    try:
        submission_id = get_security_utils().generate_submission_id()

        await ActivityService.log_activity(
            current_user['id'],
            ActivityAction.SUBMIT_QUESTION,
            {
                'submission_id': submission_id,
                'subject': submission.subject,
                'level': submission.level,
                'question_length': len(submission.question or "")
            },
            request
        )

        logger.info(f"Submission {submission_id} received from user {current_user['id']}")
        return {"submission_id": submission_id, "status": "processing"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Submission error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit question"
        )
