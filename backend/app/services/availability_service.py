# backend/app/services/availability_service.py
"""
Availability Service for the mentoring platform.

Manages mentor availability rules and answers the one question the booking
coordinator asks of them: does a requested start time fall on a slot the rule
offers?

A recurring rule matches when the start, viewed in the rule's timezone, falls
on the rule's weekday (Sunday = 0) at exactly its ``start_time``. A one-off
rule matches when one of its slots starts within the same minute.
"""

from datetime import date, datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple

import pytz
from sqlalchemy.orm import Session

from ..core.constants import (
    DEFAULT_AVAILABILITY_WINDOW_DAYS,
    DEFAULT_SESSION_DURATION,
    MAX_AVAILABILITY_WINDOW_DAYS,
    MAX_EXPANDED_SLOTS,
)
from ..core.enums import AvailabilityType
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..core.timezone_utils import ensure_utc, isoformat_z, parse_iso_datetime, to_zone, utc_now
from ..models.availability import Availability
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.availability import (
    AvailabilityCreate,
    AvailabilityUpdate,
    OneOffSlot,
    RecurringRule,
)
from .base import BaseService

logger = logging.getLogger(__name__)

SAME_MINUTE = timedelta(minutes=1)


def _sunday_first_weekday(dt: date) -> int:
    return (dt.weekday() + 1) % 7


def _parse_hhmm(value: str) -> Tuple[int, int]:
    hour, minute = value.split(":")
    return int(hour), int(minute)


def _zone(tz_name: Optional[str]):
    try:
        return pytz.timezone(tz_name or "UTC")
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


class AvailabilityService(BaseService):
    """Create, list, update and deactivate mentor availability rules."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_availability_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    # Matching

    @staticmethod
    def is_scheduled_within(availability: Optional[Availability], scheduled_at: datetime) -> bool:
        """Whether ``scheduled_at`` is one of the starts ``availability`` offers."""
        if availability is None:
            return False
        if availability.is_recurring:
            return AvailabilityService._matches_recurring(availability, scheduled_at)
        return AvailabilityService._matches_one_off(availability, scheduled_at)

    @staticmethod
    def _matches_recurring(availability: Availability, scheduled_at: datetime) -> bool:
        for rule in availability.recurring or []:
            if not isinstance(rule, dict):
                continue
            day_of_week = rule.get("day_of_week")
            start_time = rule.get("start_time")
            if not isinstance(day_of_week, int) or not start_time:
                continue

            local = to_zone(scheduled_at, rule.get("timezone") or availability.timezone)
            if _sunday_first_weekday(local) != day_of_week:
                continue
            if local.strftime("%H:%M") == start_time:
                return True
        return False

    @staticmethod
    def _matches_one_off(availability: Availability, scheduled_at: datetime) -> bool:
        target = ensure_utc(scheduled_at)
        for slot in availability.one_off or []:
            if not isinstance(slot, dict) or not slot.get("start"):
                continue
            try:
                start = parse_iso_datetime(slot["start"])
            except ValueError:
                continue
            if abs(start - target) < SAME_MINUTE:
                return True
        return False

    # Lookups

    def get_bookable_rule(self, mentor_id: str, availability_id: str) -> Availability:
        """
        Load an active rule owned by ``mentor_id``.

        Raises:
            NotFoundException: AVAILABILITY_NOT_FOUND
        """
        availability = self.repository.get_active_for_mentor(availability_id, mentor_id)
        if not availability:
            raise NotFoundException(
                "Selected availability slot is no longer available.",
                code="AVAILABILITY_NOT_FOUND",
            )
        return availability

    @BaseService.measure_operation("list_mentor_availability")
    def list_for_mentor(
        self,
        mentor_id: str,
        include_inactive: bool = False,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> Tuple[List[Availability], List[Dict[str, Any]]]:
        """
        List a mentor's rules and the concrete slots they offer in a window.

        The window defaults to the next DEFAULT_AVAILABILITY_WINDOW_DAYS days
        and is cut at MAX_AVAILABILITY_WINDOW_DAYS. Each slot carries how many
        active sessions already occupy it.

        Returns:
            (rules, slots) with slots ordered by start
        """
        if not self.user_repository.get_active_mentor(mentor_id):
            raise NotFoundException("Mentor not found.", code="MENTOR_NOT_FOUND")

        start, end = self._resolve_window(window_start, window_end)
        rules = self.repository.list_for_mentor(mentor_id, include_inactive=include_inactive)

        slots: List[Dict[str, Any]] = []
        for rule in rules:
            if not rule.active:
                continue
            slots.extend(self._expand_slots(rule, start, end))
        slots.sort(key=lambda slot: slot["start"])
        slots = slots[:MAX_EXPANDED_SLOTS]

        if slots:
            usage = self.session_repository.count_usage_by_slot(
                mentor_id, slots[0]["start"], max(slot["end"] for slot in slots)
            )
            for slot in slots:
                booked = usage.get((slot["availability_id"], isoformat_z(slot["start"])), 0)
                slot["booked"] = booked
                slot["remaining"] = max(0, slot["capacity"] - booked)

        return rules, slots

    @staticmethod
    def _resolve_window(
        window_start: Optional[datetime], window_end: Optional[datetime]
    ) -> Tuple[datetime, datetime]:
        start = ensure_utc(window_start) if window_start else utc_now()
        end = (
            ensure_utc(window_end)
            if window_end
            else start + timedelta(days=DEFAULT_AVAILABILITY_WINDOW_DAYS)
        )
        if end <= start:
            raise ValidationException("Invalid date range provided.", code="INVALID_DATE_RANGE")
        return start, min(end, start + timedelta(days=MAX_AVAILABILITY_WINDOW_DAYS))

    def _expand_slots(
        self, availability: Availability, window_start: datetime, window_end: datetime
    ) -> List[Dict[str, Any]]:
        if availability.is_recurring:
            slots: List[Dict[str, Any]] = []
            for rule in availability.recurring or []:
                slots.extend(self._expand_recurring(availability, rule, window_start, window_end))
            return slots

        slots = []
        for entry in availability.one_off or []:
            try:
                start = parse_iso_datetime(entry["start"])
                end = parse_iso_datetime(entry["end"])
            except (KeyError, TypeError, ValueError):
                continue
            if end > window_start and start < window_end:
                slots.append(
                    self._slot(
                        availability, start, end, entry.get("timezone") or availability.timezone
                    )
                )
        return slots

    def _expand_recurring(
        self,
        availability: Availability,
        rule: Dict[str, Any],
        window_start: datetime,
        window_end: datetime,
    ) -> List[Dict[str, Any]]:
        zone_name = rule.get("timezone") or availability.timezone or "UTC"
        zone = _zone(zone_name)
        try:
            start_hour, start_minute = _parse_hhmm(rule["start_time"])
            end_hour, end_minute = _parse_hhmm(rule["end_time"])
        except (KeyError, TypeError, ValueError):
            return []

        slots: List[Dict[str, Any]] = []
        day = to_zone(window_start, zone_name).date()
        last_day = to_zone(window_end, zone_name).date()
        while day <= last_day and len(slots) < MAX_EXPANDED_SLOTS:
            if _sunday_first_weekday(day) == rule.get("day_of_week"):
                local_start = zone.localize(
                    datetime(day.year, day.month, day.day, start_hour, start_minute)
                )
                local_end = zone.localize(datetime(day.year, day.month, day.day, end_hour, end_minute))
                if local_end <= local_start:
                    local_end = local_start + timedelta(minutes=DEFAULT_SESSION_DURATION)
                start = ensure_utc(local_start)
                end = ensure_utc(local_end)
                if end > window_start and start < window_end:
                    slots.append(self._slot(availability, start, end, zone_name))
            day += timedelta(days=1)
        return slots

    @staticmethod
    def _slot(
        availability: Availability, start: datetime, end: datetime, tz_name: str
    ) -> Dict[str, Any]:
        return {
            "slot_id": f"{availability.id}:{isoformat_z(start)}",
            "availability_id": availability.id,
            "type": availability.type,
            "start": start,
            "end": end,
            "timezone": tz_name,
            "capacity": availability.capacity,
            "booked": 0,
            "remaining": availability.capacity,
            "note": availability.note,
        }

    # Management

    def _ensure_can_manage(self, actor: User, mentor_id: str) -> None:
        if actor.is_admin or (actor.is_mentor and actor.id == mentor_id):
            return
        raise ForbiddenException(
            "Only the mentor or an admin can modify availability.", code="FORBIDDEN"
        )

    @staticmethod
    def _recurring_entries(rules: List[RecurringRule], timezone: str) -> List[Dict[str, Any]]:
        return [
            {
                "day_of_week": rule.day_of_week,
                "start_time": rule.start_time,
                "end_time": rule.end_time,
                "timezone": rule.timezone or timezone,
            }
            for rule in rules
        ]

    @staticmethod
    def _one_off_entries(slots: List[OneOffSlot], timezone: str) -> List[Dict[str, Any]]:
        return [
            {
                "start": isoformat_z(slot.start),
                "end": isoformat_z(slot.end),
                "timezone": slot.timezone or timezone,
            }
            for slot in slots
        ]

    @BaseService.measure_operation("create_availability")
    def create_availability(
        self, actor: User, payload: AvailabilityCreate, mentor_id: Optional[str] = None
    ) -> Availability:
        """
        Create a rule for ``mentor_id`` (the actor when omitted).

        Mentors manage their own rules; admins may manage anyone's.
        """
        mentor_id = mentor_id or actor.id
        self._ensure_can_manage(actor, mentor_id)
        if not self.user_repository.get_active_mentor(mentor_id):
            raise NotFoundException("Mentor not found.", code="MENTOR_NOT_FOUND")

        rule_type = AvailabilityType(payload.type).value
        recurring = None
        one_off = None
        if rule_type == AvailabilityType.RECURRING.value:
            recurring = self._recurring_entries(payload.recurring, payload.timezone)
        else:
            one_off = self._one_off_entries(payload.one_off, payload.timezone)

        with self.transaction():
            availability = self.repository.create(
                mentor_id=mentor_id,
                type=rule_type,
                timezone=payload.timezone,
                capacity=payload.capacity,
                note=payload.note,
                recurring=recurring,
                one_off=one_off,
                active=True,
            )

        self.log_operation(
            "availability_created",
            availability_id=availability.id,
            mentor_id=mentor_id,
            actor_id=actor.id,
            rule_type=rule_type,
        )
        return availability

    @BaseService.measure_operation("update_availability")
    def update_availability(
        self, actor: User, availability_id: str, payload: AvailabilityUpdate
    ) -> Availability:
        """
        Apply a partial update to a rule.

        Sessions already booked against the rule keep their start, capacity
        and room; only future bookings see the new values.

        Raises:
            NotFoundException: AVAILABILITY_NOT_FOUND
            ForbiddenException: actor is neither the owning mentor nor an admin
            ValidationException: INVALID_AVAILABILITY when the rule would be
                left without entries for its type
        """
        availability = self.repository.get_by_id(availability_id, load_relationships=False)
        if not availability:
            raise NotFoundException(
                "Availability entry not found.", code="AVAILABILITY_NOT_FOUND"
            )
        self._ensure_can_manage(actor, availability.mentor_id)

        changes = payload.model_dump(exclude_unset=True)
        rule_type = AvailabilityType(changes.get("type") or availability.type).value
        timezone = changes.get("timezone") or availability.timezone

        recurring = availability.recurring
        one_off = availability.one_off
        if payload.recurring is not None:
            recurring = self._recurring_entries(payload.recurring, timezone)
        if payload.one_off is not None:
            one_off = self._one_off_entries(payload.one_off, timezone)
        if rule_type == AvailabilityType.RECURRING.value:
            one_off = None
            if not recurring:
                raise ValidationException(
                    "Recurring availability requires at least one rule",
                    code="INVALID_AVAILABILITY",
                )
        else:
            recurring = None
            if not one_off:
                raise ValidationException(
                    "One-off availability requires at least one slot",
                    code="INVALID_AVAILABILITY",
                )

        with self.transaction():
            availability.type = rule_type
            availability.timezone = timezone
            availability.recurring = recurring
            availability.one_off = one_off
            if "capacity" in changes and payload.capacity is not None:
                availability.capacity = payload.capacity
            if "note" in changes:
                availability.note = payload.note
            if "active" in changes and payload.active is not None:
                availability.active = payload.active

        self.log_operation(
            "availability_updated",
            availability_id=availability.id,
            mentor_id=availability.mentor_id,
            actor_id=actor.id,
            fields=sorted(changes),
        )
        return availability

    @BaseService.measure_operation("deactivate_availability")
    def deactivate(self, actor: User, availability_id: str) -> Availability:
        """Soft-delete a rule. Existing sessions booked against it are untouched."""
        availability = self.repository.get_by_id(availability_id, load_relationships=False)
        if not availability:
            raise NotFoundException(
                "Availability entry not found.", code="AVAILABILITY_NOT_FOUND"
            )
        self._ensure_can_manage(actor, availability.mentor_id)

        with self.transaction():
            availability.active = False

        self.log_operation(
            "availability_deactivated",
            availability_id=availability.id,
            mentor_id=availability.mentor_id,
            actor_id=actor.id,
        )
        return availability
