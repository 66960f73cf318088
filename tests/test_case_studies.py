"""Tests for the case-study CMS."""

from datetime import datetime, timezone

import pytest

from agency.backend.query import eq
from agency.errors import NotFoundError, ValidationError
from agency.schemas.case_study_schema import (
    CaseStudyCreate,
    CaseStudyFilters,
    CaseStudyImageCreate,
    CaseStudyStatus,
    CaseStudyUpdate,
    ImageType,
)
from agency.tools.case_studies import (
    generate_slug,
    normalize_tags,
    validate_client_name,
    validate_slug,
    validate_title,
)
from tests.conftest import NOW


def make_case_study(**overrides) -> CaseStudyCreate:
    values = {
        "title": "Local Cafe: 300% More Foot Traffic",
        "client_name": "Brunswick Bakehouse",
        "client_industry": "Hospitality & Tourism",
        "client_location": "Brunswick, VIC",
        "challenge": "Quiet weekday mornings",
        "solution": "Local SEO and a loyalty campaign",
        "results": "Weekday sales up 40%",
        "metrics": {"foot_traffic": "+300%"},
        "tags": ["local-seo", "social-media"],
    }
    values.update(overrides)
    return CaseStudyCreate(**values)


class TestSlugHelpers:
    def test_generate_slug(self):
        assert generate_slug("Local Cafe: 300% More Foot Traffic!") == (
            "local-cafe-300-more-foot-traffic"
        )

    def test_generate_slug_collapses_separators(self):
        assert generate_slug("  Plumbing -- Leads  ") == "plumbing-leads"

    def test_generate_slug_truncates(self):
        slug = generate_slug("word " * 30)
        assert len(slug) <= 50
        assert not slug.endswith("-")

    @pytest.mark.parametrize("slug,error", [
        ("", "Slug is required"),
        ("Has Caps", "lowercase letters"),
        ("double--dash", "consecutive hyphens"),
        ("-leading", "start or end"),
        ("x" * 101, "100 characters"),
    ])
    def test_validate_slug_errors(self, slug, error):
        assert error in validate_slug(slug)

    def test_validate_slug_ok(self):
        assert validate_slug("local-cafe-2") is None

    def test_validate_title(self):
        assert validate_title("  ") == "Title is required"
        assert "at least 3" in validate_title("Hi")
        assert "200 characters" in validate_title("x" * 201)
        assert validate_title("Good title") is None

    def test_validate_client_name(self):
        assert "at least 2" in validate_client_name("A")
        assert validate_client_name("Acme") is None

    def test_normalize_tags(self):
        assert normalize_tags(["SEO", "seo", " Custom Tag ", "<b></b>"]) == ["seo", "Custom Tag"]


class TestCreate:
    @pytest.mark.asyncio
    async def test_generates_slug_and_stays_draft(self, case_study_service):
        cs = await case_study_service.create(make_case_study())
        assert cs.slug == "local-cafe-300-more-foot-traffic"
        assert cs.status == CaseStudyStatus.DRAFT
        assert cs.published_at is None

    @pytest.mark.asyncio
    async def test_publish_on_create_sets_published_at(self, case_study_service):
        cs = await case_study_service.create(make_case_study(status="published"))
        assert cs.published_at == NOW

    @pytest.mark.asyncio
    async def test_generated_slugs_are_unique(self, case_study_service):
        first = await case_study_service.create(make_case_study())
        second = await case_study_service.create(make_case_study())
        third = await case_study_service.create(make_case_study())
        assert [first.slug, second.slug, third.slug] == [
            "local-cafe-300-more-foot-traffic",
            "local-cafe-300-more-foot-traffic-1",
            "local-cafe-300-more-foot-traffic-2",
        ]

    @pytest.mark.asyncio
    async def test_explicit_slug_must_be_unique(self, case_study_service):
        await case_study_service.create(make_case_study(slug="cafe"))
        with pytest.raises(ValidationError) as exc:
            await case_study_service.create(make_case_study(slug="cafe"))
        assert exc.value.field_errors == {"slug": "This slug is already in use"}

    @pytest.mark.asyncio
    async def test_invalid_fields_collected(self, case_study_service):
        with pytest.raises(ValidationError) as exc:
            await case_study_service.create(make_case_study(
                title="Hi", slug="Bad Slug", client_industry="Space Travel"
            ))
        assert set(exc.value.field_errors) == {"title", "slug", "client_industry"}

    @pytest.mark.asyncio
    async def test_industry_and_tags_canonicalized(self, case_study_service):
        cs = await case_study_service.create(make_case_study(
            client_industry="real estate", tags=["SEO", "seo", "Referral Program"]
        ))
        assert cs.client_industry == "Real Estate"
        assert cs.tags == ["seo", "Referral Program"]

    @pytest.mark.asyncio
    async def test_text_sanitized(self, case_study_service):
        cs = await case_study_service.create(make_case_study(
            challenge="<script>alert(1)</script>Slow winter trade"
        ))
        assert cs.challenge == "Slow winter trade"

    @pytest.mark.asyncio
    async def test_author_recorded(self, case_study_service):
        cs = await case_study_service.create(make_case_study(), author_id="editor-1")
        assert cs.author_id == "editor-1"


class TestPublication:
    @pytest.mark.asyncio
    async def test_publish_then_archive_then_republish(self, case_study_service, backend):
        cs = await case_study_service.create(make_case_study())
        published = await case_study_service.update_status(cs.id, CaseStudyStatus.PUBLISHED)
        assert published.published_at == NOW

        archived = await case_study_service.update_status(cs.id, CaseStudyStatus.ARCHIVED)
        assert archived.published_at is None

        later = datetime(2025, 4, 1, tzinfo=timezone.utc)
        case_study_service._clock = lambda: later
        republished = await case_study_service.update_status(cs.id, CaseStudyStatus.PUBLISHED)
        assert republished.published_at == later

    @pytest.mark.asyncio
    async def test_update_keeps_original_publication_date(self, case_study_service):
        cs = await case_study_service.create(make_case_study(status="published"))
        case_study_service._clock = lambda: datetime(2025, 5, 1, tzinfo=timezone.utc)
        updated = await case_study_service.update(
            cs.id, CaseStudyUpdate(status=CaseStudyStatus.PUBLISHED, results="Up 50%")
        )
        assert updated.published_at == NOW
        assert updated.results == "Up 50%"

    @pytest.mark.asyncio
    async def test_update_to_draft_clears_published_at(self, case_study_service):
        cs = await case_study_service.create(make_case_study(status="published"))
        updated = await case_study_service.update(cs.id, CaseStudyUpdate(status=CaseStudyStatus.DRAFT))
        assert updated.published_at is None

    @pytest.mark.asyncio
    async def test_update_slug_conflict(self, case_study_service):
        await case_study_service.create(make_case_study(slug="taken"))
        other = await case_study_service.create(make_case_study(slug="other"))
        with pytest.raises(ValidationError):
            await case_study_service.update(other.id, CaseStudyUpdate(slug="taken"))

    @pytest.mark.asyncio
    async def test_update_own_slug_allowed(self, case_study_service):
        cs = await case_study_service.create(make_case_study(slug="mine"))
        updated = await case_study_service.update(cs.id, CaseStudyUpdate(slug="mine", title="New Title"))
        assert updated.title == "New Title"

    @pytest.mark.asyncio
    async def test_empty_update_returns_current(self, case_study_service):
        cs = await case_study_service.create(make_case_study())
        assert (await case_study_service.update(cs.id, CaseStudyUpdate())).id == cs.id

    @pytest.mark.asyncio
    async def test_update_missing(self, case_study_service):
        with pytest.raises(NotFoundError):
            await case_study_service.update("missing", CaseStudyUpdate(title="Whatever"))


class TestPublicQueries:
    @pytest.mark.asyncio
    async def test_get_by_slug_only_published(self, case_study_service):
        draft = await case_study_service.create(make_case_study(slug="draft-one"))
        live = await case_study_service.create(make_case_study(slug="live-one", status="published"))
        assert (await case_study_service.get_by_slug("live-one")).id == live.id
        with pytest.raises(NotFoundError):
            await case_study_service.get_by_slug(draft.slug)

    @pytest.mark.asyncio
    async def test_scheduled_publication_hidden(self, case_study_service, backend):
        cs = await case_study_service.create(make_case_study(slug="soon", status="published"))
        await backend.update(
            "case_studies", {"published_at": "2025-12-01T00:00:00+00:00"}, [eq("id", cs.id)]
        )
        with pytest.raises(NotFoundError):
            await case_study_service.get_by_slug("soon")

    @pytest.mark.asyncio
    async def test_list_published_paginates(self, case_study_service):
        for n in range(3):
            await case_study_service.create(make_case_study(slug=f"live-{n}", status="published"))
        await case_study_service.create(make_case_study(slug="hidden"))

        first = await case_study_service.list_published(page=1, page_size=2)
        assert first.total == 3
        assert first.total_pages == 2
        assert first.has_more is True
        assert len(first.items) == 2

        second = await case_study_service.list_published(page=2, page_size=2)
        assert len(second.items) == 1
        assert second.has_more is False

    @pytest.mark.asyncio
    async def test_list_filters(self, case_study_service):
        await case_study_service.create(make_case_study(slug="cafe", status="published"))
        await case_study_service.create(make_case_study(
            slug="plumber", title="Plumber Leads", client_industry="Trades & Services",
            tags=["google-ads"], status="published",
        ))
        by_industry = await case_study_service.list_published(
            CaseStudyFilters(industry="Trades & Services")
        )
        assert [cs.slug for cs in by_industry.items] == ["plumber"]
        by_tag = await case_study_service.list_published(CaseStudyFilters(tags=["local-seo"]))
        assert [cs.slug for cs in by_tag.items] == ["cafe"]
        by_search = await case_study_service.list_published(CaseStudyFilters(search="plumber"))
        assert [cs.slug for cs in by_search.items] == ["plumber"]

    @pytest.mark.asyncio
    async def test_list_validation(self, case_study_service):
        with pytest.raises(ValidationError):
            await case_study_service.list_case_studies(page=0)
        with pytest.raises(ValidationError):
            await case_study_service.list_case_studies(page_size=500)
        with pytest.raises(ValidationError, match="Cannot sort by"):
            await case_study_service.list_case_studies(sort_by="password")

    @pytest.mark.asyncio
    async def test_list_sorted_by_title(self, case_study_service):
        await case_study_service.create(make_case_study(title="Bravo Bakery"))
        await case_study_service.create(make_case_study(title="Alpha Autos"))
        page = await case_study_service.list_case_studies(sort_by="title", ascending=True)
        assert [cs.title for cs in page.items] == ["Alpha Autos", "Bravo Bakery"]

    @pytest.mark.asyncio
    async def test_related(self, case_study_service):
        current = await case_study_service.create(make_case_study(
            slug="current", tags=["seo"], status="published"
        ))
        same_industry = await case_study_service.create(make_case_study(
            slug="same-industry", tags=["branding"], status="published"
        ))
        shared_tag = await case_study_service.create(make_case_study(
            slug="shared-tag", client_industry="Legal Services", tags=["seo"], status="published"
        ))
        await case_study_service.create(make_case_study(
            slug="unrelated", client_industry="Legal Services", tags=["branding"], status="published"
        ))
        await case_study_service.create(make_case_study(slug="draft-related", tags=["seo"]))

        related = await case_study_service.get_related(current.id)
        assert {cs.id for cs in related} == {same_industry.id, shared_tag.id}
        by_slug = await case_study_service.get_related_by_slug("current", limit=1)
        assert len(by_slug) == 1

    @pytest.mark.asyncio
    async def test_published_slugs(self, case_study_service):
        await case_study_service.create(make_case_study(slug="one", status="published"))
        await case_study_service.create(make_case_study(slug="two"))
        assert await case_study_service.get_all_published_slugs() == ["one"]

    @pytest.mark.asyncio
    async def test_is_slug_unique(self, case_study_service):
        cs = await case_study_service.create(make_case_study(slug="one"))
        assert await case_study_service.is_slug_unique("one") is False
        assert await case_study_service.is_slug_unique("one", exclude_id=cs.id) is True
        assert await case_study_service.is_slug_unique("two") is True

    @pytest.mark.asyncio
    async def test_stats(self, case_study_service):
        await case_study_service.create(make_case_study(slug="a", status="published"))
        await case_study_service.create(make_case_study(
            slug="b", status="published", client_industry="Real Estate", tags=["local-seo"]
        ))
        await case_study_service.create(make_case_study(slug="c"))
        await case_study_service.create(make_case_study(slug="d", status="archived"))
        stats = await case_study_service.get_stats()
        assert (stats.total, stats.published, stats.draft, stats.archived) == (4, 2, 1, 1)
        assert stats.industries == {"Hospitality & Tourism": 1, "Real Estate": 1}
        assert stats.top_tags[0].tag == "local-seo"
        assert stats.top_tags[0].count == 2


class TestAdminOperations:
    @pytest.mark.asyncio
    async def test_duplicate_is_draft_copy(self, case_study_service):
        original = await case_study_service.create(make_case_study(status="published"))
        copy = await case_study_service.duplicate(original.id)
        assert copy.id != original.id
        assert copy.title == "Local Cafe: 300% More Foot Traffic (Copy)"
        assert copy.slug.startswith("local-cafe-300-more-foot-traffic-copy-")
        assert copy.status == CaseStudyStatus.DRAFT
        assert copy.published_at is None
        assert copy.metrics == original.metrics

    @pytest.mark.asyncio
    async def test_delete_removes_images(self, case_study_service, backend):
        cs = await case_study_service.create(make_case_study())
        await case_study_service.add_image(cs.id, CaseStudyImageCreate(image_url="https://cdn.example/a.jpg"))
        await case_study_service.delete(cs.id)
        assert backend.rows("case_study_images") == []
        with pytest.raises(NotFoundError):
            await case_study_service.get_by_id(cs.id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, case_study_service):
        with pytest.raises(NotFoundError):
            await case_study_service.delete("missing")

    @pytest.mark.asyncio
    async def test_bulk_delete_reports_failures(self, case_study_service):
        cs = await case_study_service.create(make_case_study())
        result = await case_study_service.bulk_delete([cs.id, "missing"])
        assert result.succeeded == [cs.id]
        assert result.failed == ["missing"]

    @pytest.mark.asyncio
    async def test_bulk_update_status(self, case_study_service):
        a = await case_study_service.create(make_case_study(slug="a"))
        b = await case_study_service.create(make_case_study(slug="b"))
        result = await case_study_service.bulk_update_status([a.id, b.id], CaseStudyStatus.PUBLISHED)
        assert result.succeeded == [a.id, b.id]
        assert await case_study_service.get_all_published_slugs() == ["a", "b"]


class TestImages:
    @pytest.mark.asyncio
    async def test_add_and_list_images(self, case_study_service):
        cs = await case_study_service.create(make_case_study(status="published"))
        await case_study_service.add_image(cs.id, CaseStudyImageCreate(
            image_url="https://cdn.example/after.jpg", image_type=ImageType.AFTER, display_order=2
        ))
        await case_study_service.add_image(cs.id, CaseStudyImageCreate(
            image_url="https://cdn.example/before.jpg", image_type=ImageType.BEFORE, display_order=1
        ))
        images = await case_study_service.list_images(cs.id)
        assert [i.image_type for i in images] == [ImageType.BEFORE, ImageType.AFTER]
        full = await case_study_service.get_by_slug(cs.slug)
        assert len(full.images) == 2

    @pytest.mark.asyncio
    async def test_relative_url_rejected(self, case_study_service):
        cs = await case_study_service.create(make_case_study())
        with pytest.raises(ValidationError):
            await case_study_service.add_image(cs.id, CaseStudyImageCreate(image_url="/uploads/a.jpg"))

    @pytest.mark.asyncio
    async def test_image_for_missing_case_study(self, case_study_service):
        with pytest.raises(NotFoundError):
            await case_study_service.add_image(
                "missing", CaseStudyImageCreate(image_url="https://cdn.example/a.jpg")
            )

    @pytest.mark.asyncio
    async def test_remove_image(self, case_study_service):
        cs = await case_study_service.create(make_case_study())
        image = await case_study_service.add_image(
            cs.id, CaseStudyImageCreate(image_url="https://cdn.example/a.jpg")
        )
        await case_study_service.remove_image(cs.id, image.id)
        assert await case_study_service.list_images(cs.id) == []
        with pytest.raises(NotFoundError):
            await case_study_service.remove_image(cs.id, image.id)
