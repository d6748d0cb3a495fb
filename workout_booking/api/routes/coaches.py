"""
Coach directory endpoints.

Public, read-only views of coach profiles: the directory, a single profile,
the free slots on a date, and the reviews clients have left.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...core.booking.feedback import DEFAULT_PAGE_SIZE, ReviewPage
from ...core.booking.models import UserProfile
from ..dependencies import AvailabilityResolverDep, CoachReviewReaderDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Serializes snake_case fields as camelCase, the shape the frontend reads."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CoachResponse(CamelModel):
    """Public coach profile."""
    id: UUID = Field(description="Coach identifier")
    first_name: str
    last_name: str
    email: str
    title: str = ""
    preferable_activity: Optional[str] = Field(None, description="Activity the coach runs")
    specializations: list[str] = []
    available_time_slots: list[str] = Field(
        default_factory=list,
        description="Weekly template, e.g. ['9:00 AM - 10:00 AM']",
    )
    image_url: str = ""
    about: str

    @classmethod
    def from_profile(cls, coach: UserProfile) -> "CoachResponse":
        return cls(
            id=coach.id,
            first_name=coach.first_name,
            last_name=coach.last_name,
            email=coach.email,
            title=coach.title,
            preferable_activity=(
                coach.preferable_activity.value if coach.preferable_activity else None
            ),
            specializations=coach.specializations,
            available_time_slots=coach.slot_calendar.labels,
            image_url=coach.image_url,
            about=coach.about_text,
        )


class AvailableSlotsResponse(BaseModel):
    content: list[str] = Field(description="Free slot labels in template order")


class ReviewItem(CamelModel):
    id: UUID
    client_name: str
    client_image_url: str
    date: str = Field(description="Civil date the review was left (YYYY-MM-DD)")
    message: str
    rating: float


class ReviewPageResponse(CamelModel):
    content: list[ReviewItem]
    current_page: int
    total_elements: int
    total_pages: int

    @classmethod
    def from_page(cls, page: ReviewPage) -> "ReviewPageResponse":
        items = []
        for feedback, author in page.entries:
            items.append(ReviewItem(
                id=feedback.id,
                client_name=author.full_name if author else "Unknown",
                client_image_url=author.image_url if author else "",
                date=feedback.created_at.date().isoformat(),
                message=feedback.comment,
                rating=feedback.rating,
            ))
        return cls(
            content=items,
            current_page=page.page,
            total_elements=page.total,
            total_pages=page.total_pages,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[CoachResponse],
    status_code=status.HTTP_200_OK,
    summary="List coaches",
)
async def list_coaches(resolver: AvailabilityResolverDep) -> list[CoachResponse]:
    return [CoachResponse.from_profile(coach) for coach in resolver.list_coaches()]


@router.get(
    "/{coach_id}",
    response_model=CoachResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a coach profile",
    responses={404: {"description": "Coach not found"}},
)
async def get_coach(coach_id: UUID, resolver: AvailabilityResolverDep) -> CoachResponse:
    return CoachResponse.from_profile(resolver.get_coach(coach_id))


@router.get(
    "/{coach_id}/available-slots/{date}",
    response_model=AvailableSlotsResponse,
    status_code=status.HTTP_200_OK,
    summary="Free slots for a coach on a date",
    description="The coach's slot template minus every slot held by a live workout that day.",
    responses={
        400: {"description": "Invalid or past date"},
        404: {"description": "Coach not found"},
    },
)
async def get_available_slots(
    coach_id: UUID,
    date: str,
    resolver: AvailabilityResolverDep,
) -> AvailableSlotsResponse:
    slots = resolver.resolve(coach_id, date)
    return AvailableSlotsResponse(content=slots)


@router.get(
    "/{coach_id}/feedbacks",
    response_model=ReviewPageResponse,
    status_code=status.HTTP_200_OK,
    summary="Client reviews of a coach",
    description="Paged. `sort` is `date` or `rating`, optionally followed by `,asc` or `,desc`.",
    responses={404: {"description": "Coach not found"}},
)
async def get_coach_feedbacks(
    coach_id: UUID,
    reader: CoachReviewReaderDep,
    page: int = Query(1, ge=1),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    sort: Optional[str] = Query(None, examples=["date,desc"]),
) -> ReviewPageResponse:
    return ReviewPageResponse.from_page(reader.page(coach_id, page=page, size=size, sort=sort))
