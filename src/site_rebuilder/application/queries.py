import uuid
from dataclasses import dataclass, field
from datetime import datetime


# 1. Queries
class Query:
    """Marker class for queries."""

    pass


@dataclass(frozen=True)
class GetAnalysisQuery(Query):
    analysis_id: uuid.UUID


@dataclass(frozen=True)
class GetRebuildQuery(Query):
    rebuild_id: uuid.UUID


@dataclass(frozen=True)
class GetDeploymentQuery(Query):
    deployment_id: uuid.UUID


# 2. Result DTOs (Data Transfer Objects)
@dataclass(frozen=True)
class PageSummaryDTO:
    url: str
    page_type: str | None
    confidence: float | None
    block_count: int
    asset_count: int


@dataclass(frozen=True)
class AnalysisDTO:
    analysis_id: uuid.UUID
    url: str
    status: str
    page_count: int
    total_blocks: int
    total_assets: int
    pages: list[PageSummaryDTO]
    metadata: dict = field(default_factory=dict)
    error_message: str | None = None


@dataclass(frozen=True)
class RebuildPageDTO:
    page_type: str
    title: str
    slug: str
    element_count: int


@dataclass(frozen=True)
class RebuildDTO:
    rebuild_id: uuid.UUID
    site_analysis_id: uuid.UUID
    template_id: uuid.UUID
    status: str
    page_count: int
    total_elements: int
    pages: list[RebuildPageDTO]
    preview_urls: dict[str, str] | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class DeployedPageDTO:
    page_type: str
    wordpress_page_id: int
    url: str
    edit_url: str


@dataclass(frozen=True)
class DeploymentDTO:
    """outcome은 status와 error_log로부터 유도됩니다.

    completed + 오류 없음 = succeeded, completed + 오류 있음 = partial.
    """

    deployment_id: uuid.UUID
    rebuild_id: uuid.UUID
    wordpress_site_id: uuid.UUID
    status: str
    outcome: str
    deployed_pages: list[DeployedPageDTO]
    error_log: list[str]
    completed_at: datetime | None = None
    duration_seconds: float | None = None
