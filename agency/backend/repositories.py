"""Typed data access for bookings, availability and case studies."""

import logging
from datetime import date
from typing import Any, Optional

from agency.backend.query import (
    any_of,
    contains_all,
    contains_text,
    eq,
    gte,
    in_,
    lte,
    neq,
)
from agency.errors import NotFoundError, ValidationError
from agency.schemas.booking_schema import (
    BlackoutDate,
    BlackoutDateCreate,
    Booking,
    BookingFilters,
    BookingStatus,
    TimeSlotTemplate,
    TimeSlotTemplateCreate,
    TimeSlotTemplateUpdate,
)
from agency.schemas.case_study_schema import (
    CaseStudy,
    CaseStudyFilters,
    CaseStudyImage,
    CaseStudyImageCreate,
)

logger = logging.getLogger(__name__)


def _search_term(text: str) -> str:
    """Strip characters that would break a PostgREST ``or=(...)`` expression."""
    return "".join(ch for ch in text.strip() if ch not in ",()*")


class BookingRepository:
    TABLE = "bookings"

    def __init__(self, backend) -> None:
        self.backend = backend

    async def insert(self, record: dict[str, Any]) -> Booking:
        row = await self.backend.insert(self.TABLE, record)
        return Booking(**row)

    async def get(self, booking_id: str) -> Booking:
        result = await self.backend.select(self.TABLE, filters=[eq("id", booking_id)], limit=1)
        if not result.rows:
            raise NotFoundError(f"Booking {booking_id} not found.")
        return Booking(**result.rows[0])

    async def update(self, booking_id: str, values: dict[str, Any]) -> Booking:
        rows = await self.backend.update(self.TABLE, values, [eq("id", booking_id)])
        if not rows:
            raise NotFoundError(f"Booking {booking_id} not found.")
        return Booking(**rows[0])

    async def search(
        self,
        filters: Optional[BookingFilters] = None,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Booking]:
        """Bookings matching the admin filters, newest first."""
        query = []
        if filters:
            if filters.status:
                query.append(in_("status", [s.value for s in filters.status]))
            if filters.date_from:
                query.append(gte("preferred_date", filters.date_from))
            if filters.date_to:
                query.append(lte("preferred_date", filters.date_to))
            if filters.business_type:
                query.append(eq("business_type", filters.business_type))
            if filters.calendar_sync_status:
                query.append(eq("calendar_sync_status", filters.calendar_sync_status))
            if filters.search and _search_term(filters.search):
                term = _search_term(filters.search)
                query.append(any_of(
                    contains_text("customer_name", term),
                    contains_text("customer_email", term),
                    contains_text("business_name", term),
                ))
        result = await self.backend.select(
            self.TABLE,
            filters=query,
            order=[("created_at", False)],
            limit=limit,
            offset=offset,
        )
        return [Booking(**row) for row in result.rows]

    async def list_active_between(self, start: date, end: date) -> list[Booking]:
        """Non-cancelled bookings with a call date in [start, end]."""
        result = await self.backend.select(
            self.TABLE,
            filters=[
                gte("preferred_date", start),
                lte("preferred_date", end),
                neq("status", BookingStatus.CANCELLED),
            ],
        )
        return [Booking(**row) for row in result.rows]


class AvailabilityRepository:
    TEMPLATES = "available_time_slots"
    BLACKOUTS = "booking_blackout_dates"

    def __init__(self, backend) -> None:
        self.backend = backend

    async def list_templates(self, active_only: bool = False) -> list[TimeSlotTemplate]:
        filters = [eq("is_available", True)] if active_only else []
        result = await self.backend.select(
            self.TEMPLATES,
            filters=filters,
            order=[("day_of_week", True), ("start_time", True)],
        )
        return [TimeSlotTemplate(**row) for row in result.rows]

    async def get_template(self, template_id: str) -> TimeSlotTemplate:
        result = await self.backend.select(
            self.TEMPLATES, filters=[eq("id", template_id)], limit=1
        )
        if not result.rows:
            raise NotFoundError(f"Time slot {template_id} not found.")
        return TimeSlotTemplate(**result.rows[0])

    async def create_template(self, data: TimeSlotTemplateCreate) -> TimeSlotTemplate:
        row = await self.backend.insert(self.TEMPLATES, data.model_dump(mode="json"))
        return TimeSlotTemplate(**row)

    async def update_template(
        self, template_id: str, data: TimeSlotTemplateUpdate
    ) -> TimeSlotTemplate:
        current = await self.get_template(template_id)
        changes = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        merged = {**current.model_dump(mode="json"), **changes}
        try:
            TimeSlotTemplateCreate(**merged)
        except ValueError as e:
            raise ValidationError(f"Invalid time slot: {e}") from e
        rows = await self.backend.update(self.TEMPLATES, changes, [eq("id", template_id)])
        return TimeSlotTemplate(**rows[0])

    async def delete_template(self, template_id: str) -> None:
        rows = await self.backend.delete(self.TEMPLATES, [eq("id", template_id)])
        if not rows:
            raise NotFoundError(f"Time slot {template_id} not found.")

    async def list_blackouts(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[BlackoutDate]:
        filters = []
        if start:
            filters.append(gte("date", start))
        if end:
            filters.append(lte("date", end))
        result = await self.backend.select(self.BLACKOUTS, filters=filters, order=[("date", True)])
        return [BlackoutDate(**row) for row in result.rows]

    async def add_blackout(self, data: BlackoutDateCreate) -> BlackoutDate:
        row = await self.backend.insert(self.BLACKOUTS, data.model_dump(mode="json"))
        return BlackoutDate(**row)

    async def delete_blackout(self, blackout_id: str) -> None:
        rows = await self.backend.delete(self.BLACKOUTS, [eq("id", blackout_id)])
        if not rows:
            raise NotFoundError(f"Blackout date {blackout_id} not found.")


class CaseStudyRepository:
    TABLE = "case_studies"
    IMAGES = "case_study_images"

    def __init__(self, backend) -> None:
        self.backend = backend

    @staticmethod
    def build_filters(filters: Optional[CaseStudyFilters]) -> list:
        query = []
        if not filters:
            return query
        if filters.industry:
            query.append(eq("client_industry", filters.industry))
        if filters.status:
            query.append(eq("status", filters.status))
        if filters.tags:
            query.append(contains_all("tags", filters.tags))
        if filters.author_id:
            query.append(eq("author_id", filters.author_id))
        if filters.published_after:
            query.append(gte("published_at", filters.published_after))
        if filters.published_before:
            query.append(lte("published_at", filters.published_before))
        if filters.search and _search_term(filters.search):
            term = _search_term(filters.search)
            query.append(any_of(
                contains_text("title", term),
                contains_text("client_name", term),
                contains_text("challenge", term),
            ))
        return query

    async def select(
        self,
        filters: Optional[list] = None,
        *,
        order: Optional[list[tuple[str, bool]]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        count: bool = False,
    ) -> tuple[list[CaseStudy], Optional[int]]:
        result = await self.backend.select(
            self.TABLE, filters=filters, order=order, limit=limit, offset=offset, count=count
        )
        return [CaseStudy(**row) for row in result.rows], result.count

    async def get(self, case_study_id: str) -> CaseStudy:
        result = await self.backend.select(self.TABLE, filters=[eq("id", case_study_id)], limit=1)
        if not result.rows:
            raise NotFoundError(f"Case study {case_study_id} not found.")
        return CaseStudy(**result.rows[0])

    async def find_by_slug(self, slug: str) -> Optional[CaseStudy]:
        result = await self.backend.select(self.TABLE, filters=[eq("slug", slug)], limit=1)
        return CaseStudy(**result.rows[0]) if result.rows else None

    async def slugs(self, filters: Optional[list] = None) -> list[tuple[str, str]]:
        """(id, slug) pairs, optionally filtered."""
        result = await self.backend.select(self.TABLE, filters=filters, columns="id,slug")
        return [(row["id"], row["slug"]) for row in result.rows]

    async def insert(self, record: dict[str, Any]) -> CaseStudy:
        row = await self.backend.insert(self.TABLE, record)
        return CaseStudy(**row)

    async def update(self, case_study_id: str, values: dict[str, Any]) -> CaseStudy:
        rows = await self.backend.update(self.TABLE, values, [eq("id", case_study_id)])
        if not rows:
            raise NotFoundError(f"Case study {case_study_id} not found.")
        return CaseStudy(**rows[0])

    async def delete(self, case_study_id: str) -> None:
        rows = await self.backend.delete(self.TABLE, [eq("id", case_study_id)])
        if not rows:
            raise NotFoundError(f"Case study {case_study_id} not found.")

    async def list_images(self, case_study_id: str) -> list[CaseStudyImage]:
        result = await self.backend.select(
            self.IMAGES,
            filters=[eq("case_study_id", case_study_id)],
            order=[("display_order", True)],
        )
        return [CaseStudyImage(**row) for row in result.rows]

    async def add_image(self, case_study_id: str, data: CaseStudyImageCreate) -> CaseStudyImage:
        row = await self.backend.insert(
            self.IMAGES, {**data.model_dump(mode="json"), "case_study_id": case_study_id}
        )
        return CaseStudyImage(**row)

    async def delete_image(self, case_study_id: str, image_id: str) -> None:
        rows = await self.backend.delete(
            self.IMAGES, [eq("id", image_id), eq("case_study_id", case_study_id)]
        )
        if not rows:
            raise NotFoundError(f"Image {image_id} not found.")

    async def delete_images_for(self, case_study_id: str) -> int:
        rows = await self.backend.delete(self.IMAGES, [eq("case_study_id", case_study_id)])
        return len(rows)
