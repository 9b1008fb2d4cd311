# backend/app/routes/v1/availability.py
"""
Mentor availability routes - API v1

Endpoints:
    POST /availability - Create a rule (mentor for self, admin for anyone)
    GET /mentors/{mentor_id}/availability - Rules plus expanded slots with usage
    PATCH /availability/{availability_id} - Partially update a rule
    DELETE /availability/{availability_id} - Deactivate a rule
"""

import asyncio
from datetime import datetime
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...api.dependencies import (
    get_availability_service,
    get_current_active_user,
    get_current_mentor_or_admin,
)
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.availability import (
    AvailabilityCreate,
    AvailabilityEnvelope,
    AvailabilityResponse,
    AvailabilitySlotResponse,
    AvailabilityUpdate,
    MentorAvailabilityResponse,
)
from ...services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "/availability", response_model=AvailabilityEnvelope, status_code=status.HTTP_201_CREATED
)
async def create_availability(
    payload: AvailabilityCreate = Body(...),
    mentor_id: Optional[str] = Query(None, alias="mentorId"),
    current_user: User = Depends(get_current_mentor_or_admin),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityEnvelope:
    try:
        availability = await asyncio.to_thread(
            availability_service.create_availability, current_user, payload, mentor_id
        )
        return AvailabilityEnvelope(
            availability=AvailabilityResponse.model_validate(availability)
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/mentors/{mentor_id}/availability", response_model=MentorAvailabilityResponse)
async def list_mentor_availability(
    mentor_id: str,
    window_start: Optional[datetime] = Query(None, alias="from"),
    window_end: Optional[datetime] = Query(None, alias="to"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> MentorAvailabilityResponse:
    """List a mentor's rules and the bookable slots they produce in a window."""
    try:
        rules, slots = await asyncio.to_thread(
            availability_service.list_for_mentor,
            mentor_id,
            include_inactive=include_inactive,
            window_start=window_start,
            window_end=window_end,
        )
        return MentorAvailabilityResponse(
            availability=[AvailabilityResponse.model_validate(rule) for rule in rules],
            slots=[AvailabilitySlotResponse(**slot) for slot in slots],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/availability/{availability_id}", response_model=AvailabilityEnvelope)
async def deactivate_availability(
    availability_id: str,
    current_user: User = Depends(get_current_mentor_or_admin),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityEnvelope:
    try:
        availability = await asyncio.to_thread(
            availability_service.deactivate, current_user, availability_id
        )
        return AvailabilityEnvelope(
            availability=AvailabilityResponse.model_validate(availability)
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/availability/{availability_id}", response_model=AvailabilityEnvelope)
async def update_availability(
    availability_id: str,
    payload: AvailabilityUpdate = Body(...),
    current_user: User = Depends(get_current_mentor_or_admin),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityEnvelope:
    """Partially update a rule. Sessions already booked keep their values."""
    try:
        availability = await asyncio.to_thread(
            availability_service.update_availability, current_user, availability_id, payload
        )
        return AvailabilityEnvelope(
            availability=AvailabilityResponse.model_validate(availability)
        )
    except DomainException as e:
        handle_domain_exception(e)
