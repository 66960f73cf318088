"""Request-scoped dependencies: backend, services and admin authentication."""

import hmac
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request

from agency.calendar_sync.client import GoogleCalendarClient
from agency.config import settings
from agency.tools.booking import BookingService
from agency.tools.case_studies import CaseStudyService

logger = logging.getLogger(__name__)


def get_backend(request: Request):
    return request.app.state.backend


def get_calendar(request: Request) -> Optional[GoogleCalendarClient]:
    return request.app.state.calendar


def get_booking_service(
    backend=Depends(get_backend),
    calendar: Optional[GoogleCalendarClient] = Depends(get_calendar),
) -> BookingService:
    return BookingService(backend, calendar)


def get_case_study_service(backend=Depends(get_backend)) -> CaseStudyService:
    return CaseStudyService(backend)


def get_admin_token() -> str:
    return settings.admin_api_token


def require_admin(
    authorization: Annotated[Optional[str], Header()] = None,
    expected: str = Depends(get_admin_token),
) -> None:
    """Accept ``Authorization: Bearer <ADMIN_API_TOKEN>`` only."""
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is not configured")
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(
        token.strip().encode(), expected.encode()
    ):
        logger.warning("Rejected admin request with missing or invalid token")
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )


BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
CaseStudyServiceDep = Annotated[CaseStudyService, Depends(get_case_study_service)]
