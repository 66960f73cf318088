from agency.backend.client import SupabaseClient
from agency.backend.memory import InMemoryBackend
from agency.backend.query import Filter, QueryResult
from agency.backend.repositories import (
    AvailabilityRepository,
    BookingRepository,
    CaseStudyRepository,
)

__all__ = [
    "SupabaseClient",
    "InMemoryBackend",
    "Filter",
    "QueryResult",
    "BookingRepository",
    "AvailabilityRepository",
    "CaseStudyRepository",
]
