import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar


@dataclass(frozen=True)
class Event:
    """모든 도메인 이벤트의 기본 클래스 (마커 인터페이스 역할)"""

    name: ClassVar[str] = "event"

    event_id: uuid.UUID = field(default_factory=uuid.uuid4, kw_only=True)
    occurred_on: datetime = field(default_factory=datetime.now, kw_only=True)

    def to_dict(self) -> dict[str, Any]:
        """이벤트를 외부 소비자용 dict로 직렬화합니다."""
        data: dict[str, Any] = {
            "event_id": str(self.event_id),
            "event_name": self.name,
            "occurred_on": self.occurred_on.isoformat(),
        }
        for f in fields(self):
            if f.name in ("event_id", "occurred_on"):
                continue
            value = getattr(self, f.name)
            data[f.name] = str(value) if isinstance(value, uuid.UUID) else value
        return data


# --- Site Discovery ---


@dataclass(frozen=True)
class SiteScraped(Event):
    """SiteAnalysis에 스크랩된 페이지가 추가되었을 때 발생하는 이벤트"""

    name: ClassVar[str] = "site_discovery.site_scraped"

    aggregate_id: uuid.UUID
    page_count: int
    url: str


@dataclass(frozen=True)
class ContentExtracted(Event):
    """페이지에서 콘텐츠 블록과 에셋이 추출되었을 때 발생하는 이벤트"""

    name: ClassVar[str] = "site_discovery.content_extracted"

    aggregate_id: uuid.UUID
    page_id: uuid.UUID
    block_count: int
    asset_count: int


@dataclass(frozen=True)
class AnalysisCompleted(Event):
    """SiteAnalysis가 완료(또는 실패)되었을 때 발생하는 이벤트"""

    name: ClassVar[str] = "site_discovery.analysis_completed"

    aggregate_id: uuid.UUID
    total_pages: int
    total_blocks: int
    success: bool


# --- Content Rebuild ---


@dataclass(frozen=True)
class RebuildGenerated(Event):
    """SiteRebuild의 페이지 생성이 끝났을 때 발생하는 이벤트"""

    name: ClassVar[str] = "content_rebuild.rebuild_generated"

    aggregate_id: uuid.UUID
    page_count: int
    template_id: uuid.UUID


@dataclass(frozen=True)
class PreviewCreated(Event):
    """미리보기 URL이 준비되었을 때 발생하는 이벤트"""

    name: ClassVar[str] = "content_rebuild.preview_created"

    aggregate_id: uuid.UUID
    preview_urls: dict[str, str]


# --- WordPress Deployment ---


@dataclass(frozen=True)
class DeploymentQueued(Event):
    """DeploymentJob이 생성되어 대기열에 들어갔을 때 발생하는 이벤트"""

    name: ClassVar[str] = "wordpress_deployment.deployment_queued"

    aggregate_id: uuid.UUID
    rebuild_id: uuid.UUID
    wordpress_site_id: uuid.UUID


@dataclass(frozen=True)
class PagePublished(Event):
    """개별 페이지가 CMS에 게시되었을 때 발생하는 이벤트"""

    name: ClassVar[str] = "wordpress_deployment.page_published"

    aggregate_id: uuid.UUID
    page_type: str
    wordpress_page_id: int
    page_url: str


@dataclass(frozen=True)
class DeploymentCompleted(Event):
    """DeploymentJob이 완료(또는 실패)되었을 때 발생하는 이벤트"""

    name: ClassVar[str] = "wordpress_deployment.deployment_completed"

    aggregate_id: uuid.UUID
    success: bool
    deployed_page_count: int
    error_count: int
