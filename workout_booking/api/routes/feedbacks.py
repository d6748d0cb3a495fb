"""
Feedback endpoint.

Leaving feedback is how a finished session moves on: the client's review
hands the workout to the coach, and the coach's closes it.
"""

import logging
from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import Field

from ..dependencies import CurrentPrincipal, FeedbackServiceDep
from .coaches import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter()


class FeedbackRequest(CamelModel):
    """Rating is accepted as a number or a numeric string."""
    workout_id: Optional[UUID] = None
    comment: Optional[str] = Field(None, max_length=2000)
    rating: Optional[Union[float, str]] = Field(None, description="Greater than 0, at most 5")


class FeedbackResponse(CamelModel):
    message: str
    feedback_id: UUID


@router.post(
    "",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Leave feedback on a workout",
    responses={
        400: {"description": "Invalid input, wrong state, or feedback already given"},
        403: {"description": "Caller is not this workout's client or coach"},
        404: {"description": "Workout not found"},
    },
)
async def give_feedback(
    request: FeedbackRequest,
    principal: CurrentPrincipal,
    service: FeedbackServiceDep,
) -> FeedbackResponse:
    feedback = service.submit(
        principal,
        workout_id=request.workout_id,
        rating=request.rating,
        comment=request.comment,
    )
    return FeedbackResponse(
        message="Feedback submitted successfully.",
        feedback_id=feedback.id,
    )
