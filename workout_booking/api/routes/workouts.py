"""
Workout endpoints.

Covers the client's path through the system: find an open coach, book a
slot, list "my workouts" (which also promotes them as time passes), and
cancel. Domain errors raised by the services are turned into HTTP
responses by the handler registered in main.py.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel, Field

from ...core.booking.lifecycle import counterpart_profiles
from ...core.booking.models import Role, UserProfile, Workout
from ..dependencies import (
    AvailabilityResolverDep,
    BookingTransactorDep,
    CancellationHandlerDep,
    CurrentPrincipal,
    UserStoreDep,
    WorkoutLifecycleDep,
)
from .coaches import CamelModel, CoachResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class BookWorkoutRequest(CamelModel):
    """Request to book a coach's slot."""
    coach_id: Optional[UUID] = Field(None, description="Coach to book")
    date: Optional[str] = Field(None, description="Civil date, YYYY-MM-DD", examples=["2026-11-02"])
    time_slot: Optional[str] = Field(
        None,
        description="Start time HH:MM (24-hour). 'HH:MM - HH:MM' uses its start.",
        examples=["09:30"],
    )


class PersonSummary(CamelModel):
    """The other party on a workout, as shown in a workout list."""
    id: UUID
    first_name: str
    last_name: str
    email: str
    image_url: str = ""
    title: Optional[str] = Field(None, description="Coaches only")

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "PersonSummary":
        return cls(
            id=profile.id,
            first_name=profile.first_name,
            last_name=profile.last_name,
            email=profile.email,
            image_url=profile.image_url,
            title=profile.title if profile.is_coach else None,
        )


class WorkoutResponse(CamelModel):
    """Public projection of a workout."""
    id: UUID
    name: str
    activity: str
    description: str
    date_time: str = Field(description="Start, ISO 8601 with the +05:30 offset")
    duration: int = Field(description="Length in minutes")
    coach_id: UUID
    client_id: Optional[UUID] = None
    feedback_id: str = Field("", description="Empty until feedback is left")
    state: str
    coach: Optional[PersonSummary] = Field(None, description="Set on a client's workout list")
    client: Optional[PersonSummary] = Field(None, description="Set on a coach's workout list")

    @classmethod
    def from_domain(
        cls,
        workout: Workout,
        coach: Optional[UserProfile] = None,
        client: Optional[UserProfile] = None,
    ) -> "WorkoutResponse":
        return cls(
            id=workout.id,
            name=workout.name,
            activity=workout.activity.value,
            description=workout.description,
            date_time=workout.date_time.isoformat(),
            duration=workout.duration,
            coach_id=workout.coach_id,
            client_id=workout.client_id,
            feedback_id=str(workout.feedback_id) if workout.feedback_id else "",
            state=workout.state.value,
            coach=PersonSummary.from_profile(coach) if coach is not None else None,
            client=PersonSummary.from_profile(client) if client is not None else None,
        )


class WorkoutListResponse(BaseModel):
    content: list[WorkoutResponse]


class AvailableCoachesResponse(CamelModel):
    available_coaches: list[CoachResponse]


class CancelWorkoutResponse(CamelModel):
    message: str
    workout_id: UUID
    outcome: str = Field(description="'released' for a client cancel, 'removed' for a coach cancel")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/available",
    response_model=AvailableCoachesResponse,
    status_code=status.HTTP_200_OK,
    summary="Coaches free at a date and time",
    responses={400: {"description": "Missing or invalid date, time or activity"}},
)
async def get_available_coaches(
    resolver: AvailabilityResolverDep,
    date: Optional[str] = Query(None, examples=["2026-11-02"]),
    time: Optional[str] = Query(None, examples=["09:30"]),
    activity: Optional[str] = Query(None),
    coach_id: Optional[UUID] = Query(None, alias="coachId"),
) -> AvailableCoachesResponse:
    coaches = resolver.open_coaches(date, time, activity=activity, coach_id=coach_id)
    return AvailableCoachesResponse(
        available_coaches=[CoachResponse.from_profile(coach) for coach in coaches]
    )


@router.post(
    "",
    response_model=WorkoutResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a workout",
    description=(
        "Returns 201 when a new workout is created and 200 when a slot released "
        "by an earlier cancellation is claimed."
    ),
    responses={
        200: {"description": "Released slot claimed", "model": WorkoutResponse},
        400: {"description": "Invalid input or lead time not met"},
        403: {"description": "Caller is not a client"},
        404: {"description": "Coach not found or not available at that time"},
        409: {"description": "Client or coach already busy at that time"},
    },
)
async def book_workout(
    request: BookWorkoutRequest,
    response: Response,
    principal: CurrentPrincipal,
    transactor: BookingTransactorDep,
) -> WorkoutResponse:
    result = transactor.book(
        principal,
        coach_id=request.coach_id,
        date_text=request.date,
        time_slot=request.time_slot,
    )
    if not result.created:
        response.status_code = status.HTTP_200_OK

    return WorkoutResponse.from_domain(result.workout)


@router.get(
    "",
    response_model=WorkoutListResponse,
    status_code=status.HTTP_200_OK,
    summary="My workouts",
    description=(
        "Clients see the workouts they booked; coaches see the workouts they run. "
        "States are brought up to date with the clock before they are returned. "
        "Each workout carries the other party's profile summary."
    ),
)
@router.get("/booked", response_model=WorkoutListResponse, include_in_schema=False)
async def list_my_workouts(
    principal: CurrentPrincipal,
    lifecycle: WorkoutLifecycleDep,
    users: UserStoreDep,
) -> WorkoutListResponse:
    workouts = lifecycle.list_for(principal)
    people = counterpart_profiles(users, principal, workouts)

    if principal.role == Role.CLIENT:
        content = [
            WorkoutResponse.from_domain(w, coach=people.get(w.coach_id))
            for w in workouts
        ]
    else:
        content = [
            WorkoutResponse.from_domain(w, client=people.get(w.client_id))
            for w in workouts
        ]
    return WorkoutListResponse(content=content)


@router.delete(
    "/{workout_id}",
    response_model=CancelWorkoutResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel a workout",
    description=(
        "A client cancel keeps the workout as history and releases the slot. "
        "A coach cancel deletes the workout. Both need 12 hours' notice."
    ),
    responses={
        400: {"description": "Inside the cancellation cutoff, or wrong state"},
        403: {"description": "Caller is neither the coach nor the client"},
        404: {"description": "Workout not found"},
    },
)
async def cancel_workout(
    workout_id: UUID,
    principal: CurrentPrincipal,
    handler: CancellationHandlerDep,
) -> CancelWorkoutResponse:
    result = handler.cancel(principal, workout_id)
    return CancelWorkoutResponse(
        message=result.message,
        workout_id=result.workout_id,
        outcome=result.outcome.value,
    )
