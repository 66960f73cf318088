"""Public endpoints used by the marketing site."""

import logging
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Query, Request

from agency.api.dependencies import BookingServiceDep, CaseStudyServiceDep
from agency.config import settings
from agency.schemas.booking_schema import BookingConfirmation, BookingCreate, DayAvailability
from agency.schemas.case_study_schema import (
    CaseStudy,
    CaseStudyFilters,
    CaseStudyPage,
    CaseStudyWithImages,
)
from agency.tools.catalog import get_form_options
from agency.utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["public"])


@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "service": settings.app_name,
        "backend": type(request.app.state.backend).__name__,
        "calendar": request.app.state.calendar is not None,
        "time": utc_now().isoformat(),
    }


@router.get("/availability", response_model=list[DayAvailability])
async def availability(
    service: BookingServiceDep,
    start: Optional[date] = None,
    end: Optional[date] = None,
    include_full: bool = False,
):
    """Bookable strategy-call slots per date."""
    return await service.get_availability(start, end, include_full)


@router.get("/availability/dates")
async def available_dates(
    service: BookingServiceDep,
    start: Optional[date] = None,
    end: Optional[date] = None,
):
    dates = await service.get_available_dates(start, end)
    return {"dates": [d.isoformat() for d in dates]}


@router.post("/bookings", response_model=BookingConfirmation, status_code=201)
async def create_booking(payload: BookingCreate, service: BookingServiceDep):
    booking = await service.submit_booking(payload)
    return BookingConfirmation.from_booking(booking)


@router.get("/options")
async def form_options():
    """Option lists for the booking form and case-study filters."""
    return get_form_options()


@router.get("/case-studies", response_model=CaseStudyPage)
async def list_case_studies(
    service: CaseStudyServiceDep,
    industry: Optional[str] = None,
    tags: Annotated[Optional[list[str]], Query()] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 12,
):
    filters = CaseStudyFilters(industry=industry, tags=tags, search=search)
    return await service.list_published(filters, page=page, page_size=page_size)


@router.get("/case-studies/{slug}", response_model=CaseStudyWithImages)
async def get_case_study(slug: str, service: CaseStudyServiceDep):
    return await service.get_by_slug(slug)


@router.get("/case-studies/{slug}/related", response_model=list[CaseStudy])
async def related_case_studies(
    slug: str,
    service: CaseStudyServiceDep,
    limit: Annotated[int, Query(ge=1, le=12)] = 3,
):
    return await service.get_related_by_slug(slug, limit)
