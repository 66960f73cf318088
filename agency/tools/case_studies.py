"""
Case-study CMS.

Case studies move between draft, published and archived. ``published_at``
is set the first time a study is published and cleared when it leaves
the published state; the public site only sees published studies whose
``published_at`` has passed.
"""

import logging
import math
import re
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Optional

from agency.backend.query import any_of, eq, lte, neq, overlaps
from agency.backend.repositories import CaseStudyRepository
from agency.errors import AgencyError, NotFoundError, ValidationError
from agency.schemas.case_study_schema import (
    BulkOperationResult,
    CaseStudy,
    CaseStudyCreate,
    CaseStudyFilters,
    CaseStudyImage,
    CaseStudyImageCreate,
    CaseStudyPage,
    CaseStudyStats,
    CaseStudyStatus,
    CaseStudyUpdate,
    CaseStudyWithImages,
    TagCount,
)
from agency.tools.catalog import INDUSTRY_OPTIONS, TAG_OPTIONS, canonical_option
from agency.utils import sanitize_text, utc_now

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 200
MIN_CLIENT_NAME_LENGTH = 2
MAX_CLIENT_NAME_LENGTH = 100
MAX_SLUG_LENGTH = 100
GENERATED_SLUG_LENGTH = 50
DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100
TOP_TAGS = 10

SORT_COLUMNS = frozenset({"created_at", "updated_at", "published_at", "title", "client_name"})
SLUG_RE = re.compile(r"^[a-z0-9-]+$")
TEXT_FIELDS = (
    "title", "client_name", "client_location", "challenge", "solution",
    "results", "testimonial", "testimonial_author",
)


def generate_slug(title: str) -> str:
    """URL slug from a title.

        >>> generate_slug("Local Cafe: 300% More Foot Traffic!")
        'local-cafe-300-more-foot-traffic'
    """
    slug = re.sub(r"[^a-z0-9\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug[:GENERATED_SLUG_LENGTH].strip("-")


def validate_slug(slug: str) -> Optional[str]:
    """Return an error message, or None if the slug is usable."""
    if not slug:
        return "Slug is required"
    if len(slug) > MAX_SLUG_LENGTH:
        return f"Slug must be {MAX_SLUG_LENGTH} characters or less"
    if not SLUG_RE.match(slug):
        return "Slug can only contain lowercase letters, numbers, and hyphens"
    if "--" in slug:
        return "Slug cannot contain consecutive hyphens"
    if slug.startswith("-") or slug.endswith("-"):
        return "Slug cannot start or end with a hyphen"
    return None


def validate_title(title: Optional[str]) -> Optional[str]:
    if not title or not title.strip():
        return "Title is required"
    if len(title) < MIN_TITLE_LENGTH:
        return f"Title must be at least {MIN_TITLE_LENGTH} characters"
    if len(title) > MAX_TITLE_LENGTH:
        return f"Title must be {MAX_TITLE_LENGTH} characters or less"
    return None


def validate_client_name(name: Optional[str]) -> Optional[str]:
    if not name or not name.strip():
        return "Client name is required"
    if len(name) < MIN_CLIENT_NAME_LENGTH:
        return f"Client name must be at least {MIN_CLIENT_NAME_LENGTH} characters"
    if len(name) > MAX_CLIENT_NAME_LENGTH:
        return f"Client name must be {MAX_CLIENT_NAME_LENGTH} characters or less"
    return None


def normalize_tags(tags: list[str]) -> list[str]:
    """Clean, de-duplicate and canonicalize tags; unknown tags are kept as typed."""
    result: list[str] = []
    for raw in tags:
        tag = sanitize_text(str(raw))
        if not tag:
            continue
        tag = canonical_option(tag, TAG_OPTIONS) or tag
        if tag not in result:
            result.append(tag)
    return result


class CaseStudyService:
    """Admin and public operations on case studies and their image records."""

    def __init__(self, backend, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.repo = CaseStudyRepository(backend)
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    # --- Validation ---

    def _clean(self, values: dict[str, Any]) -> dict[str, Any]:
        """Sanitize free text, canonicalize industry and tags, and collect field errors."""
        errors: dict[str, str] = {}
        cleaned = dict(values)
        for name in TEXT_FIELDS:
            if isinstance(cleaned.get(name), str):
                cleaned[name] = sanitize_text(cleaned[name])

        if "title" in cleaned:
            error = validate_title(cleaned["title"])
            if error:
                errors["title"] = error
        if "client_name" in cleaned:
            error = validate_client_name(cleaned["client_name"])
            if error:
                errors["client_name"] = error
        if cleaned.get("slug") is not None:
            cleaned["slug"] = cleaned["slug"].strip()
            error = validate_slug(cleaned["slug"])
            if error:
                errors["slug"] = error
        if cleaned.get("client_industry"):
            industry = canonical_option(cleaned["client_industry"], INDUSTRY_OPTIONS)
            if industry is None:
                errors["client_industry"] = "Please select a valid industry"
            cleaned["client_industry"] = industry
        if cleaned.get("tags") is not None:
            cleaned["tags"] = normalize_tags(cleaned["tags"])

        if errors:
            raise ValidationError("Please correct the highlighted fields.", field_errors=errors)
        return cleaned

    # --- Slugs ---

    async def is_slug_unique(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        filters = [eq("slug", slug)]
        if exclude_id:
            filters.append(neq("id", exclude_id))
        return not await self.repo.slugs(filters)

    async def create_unique_slug(self, title: str) -> str:
        """Slug for ``title``, suffixed -1, -2, ... until unused."""
        base = generate_slug(title)
        if not base:
            raise ValidationError(
                "Cannot generate a slug from this title",
                field_errors={"slug": "Slug is required"},
            )
        taken = {slug for _, slug in await self.repo.slugs()}
        slug, counter = base, 1
        while slug in taken:
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    async def get_all_published_slugs(self) -> list[str]:
        """Slugs of every published case study, for sitemaps."""
        return [slug for _, slug in await self.repo.slugs([eq("status", CaseStudyStatus.PUBLISHED)])]

    # --- Queries ---

    async def list_case_studies(
        self,
        filters: Optional[CaseStudyFilters] = None,
        *,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        sort_by: str = "created_at",
        ascending: bool = False,
    ) -> CaseStudyPage:
        if page < 1:
            raise ValidationError("Page must be 1 or greater", field_errors={"page": "Invalid page"})
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}",
                field_errors={"page_size": "Invalid page size"},
            )
        if sort_by not in SORT_COLUMNS:
            raise ValidationError(
                f"Cannot sort by {sort_by!r}", field_errors={"sort_by": "Invalid sort column"}
            )

        offset = (page - 1) * page_size
        items, count = await self.repo.select(
            self.repo.build_filters(filters),
            order=[(sort_by, ascending)],
            limit=page_size,
            offset=offset,
            count=True,
        )
        total = count or 0
        return CaseStudyPage(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
            has_more=offset + page_size < total,
        )

    async def list_published(self, filters: Optional[CaseStudyFilters] = None, **kwargs) -> CaseStudyPage:
        """Public listing: published studies only, newest publication first by default."""
        public = (filters or CaseStudyFilters()).model_copy(
            update={"status": CaseStudyStatus.PUBLISHED, "published_before": self.now()}
        )
        kwargs.setdefault("sort_by", "published_at")
        return await self.list_case_studies(public, **kwargs)

    async def get_by_id(self, case_study_id: str) -> CaseStudyWithImages:
        case_study = await self.repo.get(case_study_id)
        images = await self.repo.list_images(case_study_id)
        return CaseStudyWithImages(**case_study.model_dump(), images=images)

    async def get_by_slug(self, slug: str) -> CaseStudyWithImages:
        """Published case study for the public site.

        Raises:
            NotFoundError: for unknown, unpublished or scheduled studies.
        """
        items, _ = await self.repo.select(
            [
                eq("slug", slug),
                eq("status", CaseStudyStatus.PUBLISHED),
                lte("published_at", self.now()),
            ],
            limit=1,
        )
        if not items:
            raise NotFoundError(f"Case study '{slug}' not found.")
        images = await self.repo.list_images(items[0].id)
        return CaseStudyWithImages(**items[0].model_dump(), images=images)

    async def get_related(self, case_study_id: str, limit: int = 3) -> list[CaseStudy]:
        """Other published studies sharing the industry or any tag, newest first."""
        current = await self.repo.get(case_study_id)
        filters = [
            eq("status", CaseStudyStatus.PUBLISHED),
            lte("published_at", self.now()),
            neq("id", case_study_id),
        ]
        similar = []
        if current.client_industry:
            similar.append(eq("client_industry", current.client_industry))
        if current.tags:
            similar.append(overlaps("tags", current.tags))
        if similar:
            filters.append(any_of(*similar))
        items, _ = await self.repo.select(filters, order=[("published_at", False)], limit=limit)
        return items

    async def get_related_by_slug(self, slug: str, limit: int = 3) -> list[CaseStudy]:
        current = await self.get_by_slug(slug)
        return await self.get_related(current.id, limit)

    async def get_stats(self) -> CaseStudyStats:
        """Status counts over all studies; industries and tags over published ones."""
        items, _ = await self.repo.select()
        by_status = Counter(cs.status for cs in items)
        published = [cs for cs in items if cs.status == CaseStudyStatus.PUBLISHED]
        industries = Counter(cs.client_industry for cs in published if cs.client_industry)
        tags = Counter(tag for cs in published for tag in cs.tags)
        return CaseStudyStats(
            total=len(items),
            published=by_status[CaseStudyStatus.PUBLISHED],
            draft=by_status[CaseStudyStatus.DRAFT],
            archived=by_status[CaseStudyStatus.ARCHIVED],
            industries=dict(industries),
            top_tags=[TagCount(tag=t, count=c) for t, c in tags.most_common(TOP_TAGS)],
        )

    # --- Mutations ---

    async def create(self, data: CaseStudyCreate, author_id: Optional[str] = None) -> CaseStudy:
        values = self._clean(data.model_dump(mode="json"))
        if values.get("slug"):
            if not await self.is_slug_unique(values["slug"]):
                raise ValidationError(
                    "Slug is already in use", field_errors={"slug": "This slug is already in use"}
                )
        else:
            values["slug"] = await self.create_unique_slug(values["title"])
        if author_id:
            values["author_id"] = author_id
        values["published_at"] = (
            self.now().isoformat() if values["status"] == CaseStudyStatus.PUBLISHED.value else None
        )
        case_study = await self.repo.insert(values)
        logger.info("Case study created: %s (%s)", case_study.slug, case_study.status.value)
        return case_study

    async def update(self, case_study_id: str, data: CaseStudyUpdate) -> CaseStudy:
        current = await self.repo.get(case_study_id)
        values = self._clean(data.model_dump(mode="json", exclude_unset=True, exclude_none=True))
        if "slug" in values and values["slug"] != current.slug:
            if not await self.is_slug_unique(values["slug"], exclude_id=case_study_id):
                raise ValidationError(
                    "Slug is already in use", field_errors={"slug": "This slug is already in use"}
                )
        if "status" in values:
            values.update(self._publication_change(current, CaseStudyStatus(values["status"])))
        if not values:
            return current
        case_study = await self.repo.update(case_study_id, values)
        logger.info("Case study updated: %s", case_study.slug)
        return case_study

    def _publication_change(self, current: CaseStudy, status: CaseStudyStatus) -> dict[str, Any]:
        if status == CaseStudyStatus.PUBLISHED:
            if current.published_at is None:
                return {"published_at": self.now().isoformat()}
            return {}
        return {"published_at": None}

    async def update_status(self, case_study_id: str, status: CaseStudyStatus) -> CaseStudy:
        current = await self.repo.get(case_study_id)
        values = {"status": CaseStudyStatus(status).value}
        values.update(self._publication_change(current, CaseStudyStatus(status)))
        case_study = await self.repo.update(case_study_id, values)
        logger.info(
            "Case study %s status: %s -> %s",
            case_study.slug, current.status.value, case_study.status.value,
        )
        return case_study

    async def delete(self, case_study_id: str) -> None:
        """Delete a case study and its image records."""
        await self.repo.get(case_study_id)
        removed = await self.repo.delete_images_for(case_study_id)
        await self.repo.delete(case_study_id)
        logger.info("Case study deleted: %s (%d image(s))", case_study_id, removed)

    async def duplicate(self, case_study_id: str, author_id: Optional[str] = None) -> CaseStudy:
        """Copy a case study as a new draft."""
        original = await self.repo.get(case_study_id)
        stamp = int(self.now().timestamp() * 1000)
        values = original.model_dump(
            mode="json", exclude={"id", "created_at", "updated_at", "published_at"}
        )
        values.update(
            title=f"{original.title} (Copy)"[:MAX_TITLE_LENGTH],
            slug=f"{original.slug}-copy-{stamp}",
            status=CaseStudyStatus.DRAFT.value,
            published_at=None,
        )
        if author_id:
            values["author_id"] = author_id
        copy = await self.repo.insert(values)
        logger.info("Case study duplicated: %s -> %s", original.slug, copy.slug)
        return copy

    async def bulk_delete(self, ids: list[str]) -> BulkOperationResult:
        result = BulkOperationResult()
        for case_study_id in ids:
            try:
                await self.delete(case_study_id)
            except AgencyError as e:
                logger.warning("Failed to delete case study %s: %s", case_study_id, e.message)
                result.failed.append(case_study_id)
            else:
                result.succeeded.append(case_study_id)
        return result

    async def bulk_update_status(
        self, ids: list[str], status: CaseStudyStatus
    ) -> BulkOperationResult:
        result = BulkOperationResult()
        for case_study_id in ids:
            try:
                await self.update_status(case_study_id, status)
            except AgencyError as e:
                logger.warning("Failed to update case study %s: %s", case_study_id, e.message)
                result.failed.append(case_study_id)
            else:
                result.succeeded.append(case_study_id)
        return result

    # --- Images ---

    async def list_images(self, case_study_id: str) -> list[CaseStudyImage]:
        return await self.repo.list_images(case_study_id)

    async def add_image(self, case_study_id: str, data: CaseStudyImageCreate) -> CaseStudyImage:
        """Attach an already-uploaded image URL to a case study."""
        await self.repo.get(case_study_id)
        if not data.image_url.startswith(("https://", "http://")):
            raise ValidationError(
                "Image URL must be an absolute http(s) URL",
                field_errors={"image_url": "Invalid URL"},
            )
        return await self.repo.add_image(case_study_id, data)

    async def remove_image(self, case_study_id: str, image_id: str) -> None:
        await self.repo.delete_image(case_study_id, image_id)
