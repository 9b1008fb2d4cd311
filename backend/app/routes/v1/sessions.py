# backend/app/routes/v1/sessions.py
"""
Mentoring session routes - API v1

Versioned session endpoints under /api/v1/sessions.
All business logic delegated to SessionBookingService and SessionService.

Endpoints:
    POST / - Book a session for the current mentee
    GET / - List the caller's sessions with pagination
    GET /{session_id} - Session details for participants and admins
    POST /{session_id}/confirm - Confirm a pending session (owning mentor)
    POST /{session_id}/cancel - Cancel a session (participants and admins)
    POST /{session_id}/reschedule - Move a session to a new start (owning mentor)
    POST /{session_id}/complete - Record attendance and outcome (participants)
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...api.dependencies import (
    get_current_active_user,
    get_current_mentor,
    get_session_booking_service,
    get_session_service,
)
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.base import PaginationMeta
from ...schemas.session import (
    SessionBookRequest,
    SessionCancelRequest,
    SessionCompleteRequest,
    SessionEnvelope,
    SessionListResponse,
    SessionRescheduleRequest,
    SessionResponse,
)
from ...services.session_booking_service import SessionBookingService
from ...services.session_service import SessionService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["sessions-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("", response_model=SessionEnvelope, status_code=status.HTTP_201_CREATED)
async def book_session(
    payload: SessionBookRequest = Body(...),
    current_user: User = Depends(get_current_active_user),
    booking_service: SessionBookingService = Depends(get_session_booking_service),
) -> SessionEnvelope:
    """
    Book a session with a mentor.

    The slot is reserved first; concurrent requests for the same slot get
    409 SLOT_LOCKED with Retry-After, and a slot at capacity gets 409
    SLOT_FULL. A successful booking starts in ``pending``.
    """
    try:
        session = await asyncio.to_thread(
            booking_service.book_session,
            mentee=current_user,
            mentor_id=payload.mentor_id,
            scheduled_at=payload.scheduled_at,
            duration_minutes=payload.duration_minutes,
            availability_ref=payload.availability_ref,
            subject=payload.subject,
            room=payload.room,
        )
        return SessionEnvelope(session=SessionResponse.model_validate(session))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionListResponse:
    """List sessions the caller booked (mentees) or leads (mentors), newest first."""
    try:
        sessions, meta = await asyncio.to_thread(
            session_service.list_sessions,
            current_user,
            status=status_filter,
            page=page,
            limit=limit,
        )
        return SessionListResponse(
            sessions=[SessionResponse.model_validate(s) for s in sessions],
            meta=PaginationMeta(**meta),
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{session_id}", response_model=SessionEnvelope)
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionEnvelope:
    try:
        session = await asyncio.to_thread(session_service.get_session, current_user, session_id)
        return SessionEnvelope(session=SessionResponse.model_validate(session))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/confirm", response_model=SessionEnvelope)
async def confirm_session(
    session_id: str,
    current_user: User = Depends(get_current_mentor),
    session_service: SessionService = Depends(get_session_service),
) -> SessionEnvelope:
    try:
        session = await asyncio.to_thread(
            session_service.confirm_session, current_user, session_id
        )
        return SessionEnvelope(session=SessionResponse.model_validate(session))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/cancel", response_model=SessionEnvelope)
async def cancel_session(
    session_id: str,
    payload: Optional[SessionCancelRequest] = Body(None),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionEnvelope:
    """Cancel a session. Cancelling frees the seat for other mentees."""
    try:
        session = await asyncio.to_thread(
            session_service.cancel_session,
            current_user,
            session_id,
            reason=payload.reason if payload else None,
        )
        return SessionEnvelope(session=SessionResponse.model_validate(session))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/reschedule", response_model=SessionEnvelope)
async def reschedule_session(
    session_id: str,
    payload: SessionRescheduleRequest = Body(...),
    current_user: User = Depends(get_current_mentor),
    booking_service: SessionBookingService = Depends(get_session_booking_service),
) -> SessionEnvelope:
    """
    Move a session to a new start. The new slot is reserved and checked for
    capacity exactly like a new booking.
    """
    try:
        session = await asyncio.to_thread(
            booking_service.reschedule_session,
            mentor=current_user,
            session_id=session_id,
            scheduled_at=payload.scheduled_at,
            duration_minutes=payload.duration_minutes,
            availability_ref=payload.availability_ref,
        )
        return SessionEnvelope(session=SessionResponse.model_validate(session))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/complete", response_model=SessionEnvelope)
async def complete_session(
    session_id: str,
    payload: Optional[SessionCompleteRequest] = Body(None),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionEnvelope:
    payload = payload or SessionCompleteRequest()
    try:
        session = await asyncio.to_thread(
            session_service.complete_session,
            current_user,
            session_id,
            attended=payload.attended,
            tasks_completed=payload.tasks_completed,
            notes=payload.notes,
        )
        return SessionEnvelope(session=SessionResponse.model_validate(session))
    except DomainException as e:
        handle_domain_exception(e)
