"""Case-study CMS data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CaseStudyStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ImageType(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    GALLERY = "gallery"


class CaseStudyImageCreate(BaseModel):
    image_url: str
    alt_text: Optional[str] = None
    caption: Optional[str] = None
    image_type: ImageType = ImageType.GALLERY
    display_order: int = 0


class CaseStudyImage(CaseStudyImageCreate):
    id: str
    case_study_id: str
    created_at: Optional[datetime] = None


class CaseStudyCreate(BaseModel):
    """Editor payload for a new case study. Slug is generated from the title when omitted."""

    title: str
    slug: Optional[str] = None
    client_name: str
    client_industry: Optional[str] = None
    client_location: Optional[str] = None
    challenge: str = ""
    solution: str = ""
    results: str = ""
    testimonial: Optional[str] = None
    testimonial_author: Optional[str] = None
    before_image_url: Optional[str] = None
    after_image_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    metrics: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    status: CaseStudyStatus = CaseStudyStatus.DRAFT
    author_id: Optional[str] = None


class CaseStudyUpdate(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    client_name: Optional[str] = None
    client_industry: Optional[str] = None
    client_location: Optional[str] = None
    challenge: Optional[str] = None
    solution: Optional[str] = None
    results: Optional[str] = None
    testimonial: Optional[str] = None
    testimonial_author: Optional[str] = None
    before_image_url: Optional[str] = None
    after_image_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    metrics: Optional[dict[str, str]] = None
    tags: Optional[list[str]] = None
    status: Optional[CaseStudyStatus] = None


class CaseStudy(BaseModel):
    id: str
    title: str
    slug: str
    client_name: str
    client_industry: Optional[str] = None
    client_location: Optional[str] = None
    challenge: str = ""
    solution: str = ""
    results: str = ""
    testimonial: Optional[str] = None
    testimonial_author: Optional[str] = None
    before_image_url: Optional[str] = None
    after_image_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    metrics: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    status: CaseStudyStatus = CaseStudyStatus.DRAFT
    published_at: Optional[datetime] = None
    author_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class CaseStudyWithImages(CaseStudy):
    images: list[CaseStudyImage] = Field(default_factory=list)


class CaseStudyFilters(BaseModel):
    industry: Optional[str] = None
    status: Optional[CaseStudyStatus] = None
    tags: Optional[list[str]] = None
    search: Optional[str] = None
    author_id: Optional[str] = None
    published_after: Optional[datetime] = None
    published_before: Optional[datetime] = None


class CaseStudyPage(BaseModel):
    items: list[CaseStudy] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 12
    total_pages: int = 0
    has_more: bool = False


class TagCount(BaseModel):
    tag: str
    count: int


class CaseStudyStats(BaseModel):
    total: int = 0
    published: int = 0
    draft: int = 0
    archived: int = 0
    industries: dict[str, int] = Field(default_factory=dict)
    top_tags: list[TagCount] = Field(default_factory=list)


class BulkOperationResult(BaseModel):
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class CaseStudyStatusUpdate(BaseModel):
    status: CaseStudyStatus


class BulkDeleteRequest(BaseModel):
    ids: list[str] = Field(min_length=1)


class BulkStatusRequest(BaseModel):
    ids: list[str] = Field(min_length=1)
    status: CaseStudyStatus
