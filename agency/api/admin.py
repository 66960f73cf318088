"""Admin endpoints: bookings, availability and the case-study CMS."""

import logging
from datetime import date, datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from pydantic import BaseModel

from agency.api.dependencies import BookingServiceDep, CaseStudyServiceDep, require_admin
from agency.calendar_sync.templates import FollowUpType
from agency.schemas.booking_schema import (
    BlackoutDate,
    BlackoutDateCreate,
    Booking,
    BookingFilters,
    BookingReschedule,
    BookingStats,
    BookingStatus,
    BookingStatusUpdate,
    CalendarSyncStatus,
    TimeSlotTemplate,
    TimeSlotTemplateCreate,
    TimeSlotTemplateUpdate,
)
from agency.schemas.case_study_schema import (
    BulkDeleteRequest,
    BulkOperationResult,
    BulkStatusRequest,
    CaseStudy,
    CaseStudyCreate,
    CaseStudyFilters,
    CaseStudyImage,
    CaseStudyImageCreate,
    CaseStudyPage,
    CaseStudyStats,
    CaseStudyStatus,
    CaseStudyStatusUpdate,
    CaseStudyUpdate,
    CaseStudyWithImages,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class FollowUpRequest(BaseModel):
    starts_at: datetime
    follow_up_type: FollowUpType = FollowUpType.PROPOSAL_REVIEW


# --- Bookings ---

def booking_filters(
    status: Annotated[Optional[list[BookingStatus]], Query()] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    business_type: Optional[str] = None,
    calendar_sync_status: Optional[CalendarSyncStatus] = None,
    search: Optional[str] = None,
) -> BookingFilters:
    return BookingFilters(
        status=status,
        date_from=date_from,
        date_to=date_to,
        business_type=business_type,
        calendar_sync_status=calendar_sync_status,
        search=search,
    )


@router.get("/bookings", response_model=list[Booking])
async def list_bookings(
    service: BookingServiceDep,
    filters: Annotated[BookingFilters, Depends(booking_filters)],
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_bookings(filters, limit=limit, offset=offset)


@router.get("/bookings/stats", response_model=BookingStats)
async def booking_stats(service: BookingServiceDep):
    return await service.get_stats()


@router.get("/bookings/export")
async def export_bookings(
    service: BookingServiceDep,
    filters: Annotated[BookingFilters, Depends(booking_filters)],
):
    body = await service.export_csv(filters)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="bookings.csv"'},
    )


@router.get("/bookings/{booking_id}", response_model=Booking)
async def get_booking(booking_id: str, service: BookingServiceDep):
    return await service.get_booking(booking_id)


@router.patch("/bookings/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: str, payload: BookingStatusUpdate, service: BookingServiceDep
):
    return await service.update_status(booking_id, payload.status, payload.note)


@router.post("/bookings/{booking_id}/reschedule", response_model=Booking)
async def reschedule_booking(
    booking_id: str, payload: BookingReschedule, service: BookingServiceDep
):
    return await service.reschedule_booking(booking_id, payload)


@router.post("/bookings/{booking_id}/calendar-sync", response_model=Booking)
async def retry_calendar_sync(booking_id: str, service: BookingServiceDep):
    return await service.retry_calendar_sync(booking_id)


@router.post("/bookings/{booking_id}/follow-up", status_code=201)
async def schedule_follow_up(
    booking_id: str, payload: FollowUpRequest, service: BookingServiceDep
):
    return await service.schedule_follow_up(booking_id, payload.starts_at, payload.follow_up_type)


@router.get("/calendar/events")
async def calendar_events(start: date, end: date, service: BookingServiceDep):
    return {"events": await service.list_calendar_events(start, end)}


# --- Availability ---

@router.get("/time-slots", response_model=list[TimeSlotTemplate])
async def list_time_slots(service: BookingServiceDep):
    return await service.list_templates()


@router.post("/time-slots", response_model=TimeSlotTemplate, status_code=201)
async def create_time_slot(payload: TimeSlotTemplateCreate, service: BookingServiceDep):
    return await service.create_template(payload)


@router.post("/time-slots/seed", response_model=list[TimeSlotTemplate], status_code=201)
async def seed_time_slots(service: BookingServiceDep):
    return await service.seed_default_templates()


@router.patch("/time-slots/{template_id}", response_model=TimeSlotTemplate)
async def update_time_slot(
    template_id: str, payload: TimeSlotTemplateUpdate, service: BookingServiceDep
):
    return await service.update_template(template_id, payload)


@router.delete("/time-slots/{template_id}", status_code=204)
async def delete_time_slot(template_id: str, service: BookingServiceDep):
    await service.delete_template(template_id)
    return Response(status_code=204)


@router.get("/blackout-dates", response_model=list[BlackoutDate])
async def list_blackout_dates(
    service: BookingServiceDep,
    start: Optional[date] = None,
    end: Optional[date] = None,
):
    return await service.list_blackouts(start, end)


@router.post("/blackout-dates", response_model=BlackoutDate, status_code=201)
async def add_blackout_date(payload: BlackoutDateCreate, service: BookingServiceDep):
    return await service.add_blackout(payload)


@router.post("/blackout-dates/holidays/{year}", response_model=list[BlackoutDate], status_code=201)
async def import_holidays(
    year: Annotated[int, Path(ge=2000, le=2100)], service: BookingServiceDep
):
    return await service.import_holidays(year)


@router.delete("/blackout-dates/{blackout_id}", status_code=204)
async def delete_blackout_date(blackout_id: str, service: BookingServiceDep):
    await service.remove_blackout(blackout_id)
    return Response(status_code=204)


# --- Case studies ---

@router.get("/case-studies", response_model=CaseStudyPage)
async def list_case_studies(
    service: CaseStudyServiceDep,
    status: Optional[CaseStudyStatus] = None,
    industry: Optional[str] = None,
    tags: Annotated[Optional[list[str]], Query()] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 12,
    sort_by: str = "created_at",
    ascending: bool = False,
):
    filters = CaseStudyFilters(status=status, industry=industry, tags=tags, search=search)
    return await service.list_case_studies(
        filters, page=page, page_size=page_size, sort_by=sort_by, ascending=ascending
    )


@router.get("/case-studies/stats", response_model=CaseStudyStats)
async def case_study_stats(service: CaseStudyServiceDep):
    return await service.get_stats()


@router.get("/case-studies/slugs")
async def published_slugs(service: CaseStudyServiceDep):
    return {"slugs": await service.get_all_published_slugs()}


@router.post("/case-studies", response_model=CaseStudy, status_code=201)
async def create_case_study(payload: CaseStudyCreate, service: CaseStudyServiceDep):
    return await service.create(payload)


@router.post("/case-studies/bulk-delete", response_model=BulkOperationResult)
async def bulk_delete_case_studies(payload: BulkDeleteRequest, service: CaseStudyServiceDep):
    return await service.bulk_delete(payload.ids)


@router.post("/case-studies/bulk-status", response_model=BulkOperationResult)
async def bulk_update_case_study_status(payload: BulkStatusRequest, service: CaseStudyServiceDep):
    return await service.bulk_update_status(payload.ids, payload.status)


@router.get("/case-studies/{case_study_id}", response_model=CaseStudyWithImages)
async def get_case_study(case_study_id: str, service: CaseStudyServiceDep):
    return await service.get_by_id(case_study_id)


@router.patch("/case-studies/{case_study_id}", response_model=CaseStudy)
async def update_case_study(
    case_study_id: str, payload: CaseStudyUpdate, service: CaseStudyServiceDep
):
    return await service.update(case_study_id, payload)


@router.patch("/case-studies/{case_study_id}/status", response_model=CaseStudy)
async def update_case_study_status(
    case_study_id: str, payload: CaseStudyStatusUpdate, service: CaseStudyServiceDep
):
    return await service.update_status(case_study_id, payload.status)


@router.post("/case-studies/{case_study_id}/duplicate", response_model=CaseStudy, status_code=201)
async def duplicate_case_study(case_study_id: str, service: CaseStudyServiceDep):
    return await service.duplicate(case_study_id)


@router.delete("/case-studies/{case_study_id}", status_code=204)
async def delete_case_study(case_study_id: str, service: CaseStudyServiceDep):
    await service.delete(case_study_id)
    return Response(status_code=204)


@router.get("/case-studies/{case_study_id}/images", response_model=list[CaseStudyImage])
async def list_case_study_images(case_study_id: str, service: CaseStudyServiceDep):
    return await service.list_images(case_study_id)


@router.post(
    "/case-studies/{case_study_id}/images", response_model=CaseStudyImage, status_code=201
)
async def add_case_study_image(
    case_study_id: str, payload: CaseStudyImageCreate, service: CaseStudyServiceDep
):
    return await service.add_image(case_study_id, payload)


@router.delete("/case-studies/{case_study_id}/images/{image_id}", status_code=204)
async def delete_case_study_image(
    case_study_id: str, image_id: str, service: CaseStudyServiceDep
):
    await service.remove_image(case_study_id, image_id)
    return Response(status_code=204)
