from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, override
from urllib.parse import SplitResult, urlsplit, urlunsplit

from site_rebuilder.domain.base import AggregateRoot, Entity, parse_datetime, transition
from site_rebuilder.domain.events import (
    AnalysisCompleted,
    ContentExtracted,
    SiteScraped,
)
from site_rebuilder.domain.exceptions import (
    BusinessRuleViolationError,
    InvalidOperationError,
    ValidationError,
)

# --- Value Objects ---


@dataclass(frozen=True)
class URL:
    """정규화된 절대 웹 주소를 나타내는 Value Object

    생성 시 절대 URL인지 검증하고, 경로의 끝 슬래시를 제거합니다.
    """

    value: str

    def __post_init__(self):
        parts = self._split(self.value)
        object.__setattr__(self, "value", self._normalize(parts))

    @staticmethod
    def _split(raw: str) -> SplitResult:
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError("URL cannot be empty")
        try:
            parts = urlsplit(raw.strip())
            _ = parts.port  # 잘못된 포트는 여기서 ValueError
        except ValueError as e:
            raise ValidationError(f"Invalid URL format: {raw}") from e
        if not parts.scheme or not parts.hostname:
            raise ValidationError(f"Invalid URL format: {raw}")
        if any(ch.isspace() for ch in parts.netloc):
            raise ValidationError(f"Invalid URL format: {raw}")
        return parts

    @staticmethod
    def _normalize(parts: SplitResult) -> str:
        userinfo, _, host = parts.netloc.rpartition("@")
        netloc = f"{userinfo}@{host.lower()}" if userinfo else host.lower()
        return urlunsplit(
            (
                parts.scheme.lower(),
                netloc,
                parts.path.rstrip("/"),
                parts.query,
                parts.fragment,
            )
        )

    @classmethod
    def is_valid(cls, raw: str) -> bool:
        try:
            cls._split(raw)
        except ValidationError:
            return False
        return True

    @property
    def domain(self) -> str:
        return urlsplit(self.value).hostname or ""

    @property
    def protocol(self) -> str:
        return urlsplit(self.value).scheme

    @property
    def path(self) -> str:
        return urlsplit(self.value).path or "/"

    @override
    def __str__(self) -> str:
        return self.value


class PageType(Enum):
    HOMEPAGE = "homepage"
    MENU = "menu"
    ABOUT = "about"
    CONTACT = "contact"
    GALLERY = "gallery"
    HOURS = "hours"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PageClassification:
    """페이지 분류 결과(페이지 타입 + 신뢰도)를 나타내는 Value Object"""

    page_type: PageType
    confidence: float

    def __post_init__(self):
        if not isinstance(self.page_type, PageType):
            try:
                object.__setattr__(self, "page_type", PageType(self.page_type))
            except ValueError as e:
                raise ValidationError(f"Invalid page type: {self.page_type}") from e
        if isinstance(self.confidence, bool) or not isinstance(
            self.confidence, (int, float)
        ):
            raise ValidationError("Confidence must be a number")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError("Confidence must be between 0 and 1")

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= 0.8

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < 0.5

    @override
    def __str__(self) -> str:
        return f"{self.page_type.value} ({self.confidence * 100:.0f}%)"


@dataclass(frozen=True)
class ScrapedImage:
    url: str
    alt: str | None = None
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class ScrapedLink:
    url: str
    text: str = ""


@dataclass(frozen=True)
class ScrapedContent:
    """스크래퍼가 URL 하나에 대해 전달하는 원본 데이터"""

    url: str
    text: str
    title: str | None = None
    description: str | None = None
    images: list[ScrapedImage] = field(default_factory=list)
    links: list[ScrapedLink] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "text": self.text,
            "images": [
                {"url": i.url, "alt": i.alt, "width": i.width, "height": i.height}
                for i in self.images
            ],
            "links": [{"url": link.url, "text": link.text} for link in self.links],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScrapedContent:
        return cls(
            url=data["url"],
            text=data.get("text") or "",
            title=data.get("title"),
            description=data.get("description"),
            images=[ScrapedImage(**image) for image in data.get("images", [])],
            links=[ScrapedLink(**link) for link in data.get("links", [])],
            metadata=dict(data.get("metadata") or {}),
        )


# --- Entities ---


class ContentBlockType(Enum):
    HERO = "hero"
    TEXT = "text"
    IMAGE = "image"
    GALLERY = "gallery"
    MENU_SECTION = "menu_section"
    MENU_ITEM = "menu_item"
    CONTACT_INFO = "contact_info"
    HOURS = "hours"
    CTA = "cta"
    FOOTER = "footer"


@dataclass(eq=False)
class ContentBlock(Entity):
    """페이지에서 추출된 콘텐츠 조각을 나타내는 Entity"""

    block_type: ContentBlockType
    content: dict[str, Any] = field(default_factory=dict)
    position: int = 0

    def __post_init__(self):
        if not isinstance(self.block_type, ContentBlockType):
            try:
                self.block_type = ContentBlockType(self.block_type)
            except ValueError as e:
                raise ValidationError(f"Invalid block type: {self.block_type}") from e
        self._check_position(self.position)

    @staticmethod
    def _check_position(position: int) -> None:
        if position < 0:
            raise ValidationError("Position must be non-negative")

    def update_content(self, new_content: Mapping[str, Any]) -> None:
        self.content = {**self.content, **new_content}
        self.touch()

    def update_position(self, new_position: int) -> None:
        self._check_position(new_position)
        self.position = new_position
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "block_type": self.block_type.value,
            "content": self.content,
            "position": self.position,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContentBlock:
        return cls(
            id=uuid.UUID(str(data["id"])),
            block_type=ContentBlockType(data["block_type"]),
            content=dict(data.get("content") or {}),
            position=data.get("position", 0),
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
        )


class AssetType(Enum):
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"


@dataclass(eq=False)
class ExtractedAsset(Entity):
    """페이지에서 발견된 미디어 참조를 나타내는 Entity"""

    url: URL
    asset_type: AssetType = AssetType.IMAGE
    alt: str | None = None
    title: str | None = None
    width: int | None = None
    height: int | None = None

    def __post_init__(self):
        if not isinstance(self.url, URL):
            self.url = URL(self.url)
        if not isinstance(self.asset_type, AssetType):
            try:
                self.asset_type = AssetType(self.asset_type)
            except ValueError as e:
                raise ValidationError(f"Invalid asset type: {self.asset_type}") from e

    @property
    def dimensions(self) -> tuple[int | None, int | None]:
        return self.width, self.height

    @property
    def is_image(self) -> bool:
        return self.asset_type == AssetType.IMAGE

    def update_metadata(
        self,
        alt: str | None = None,
        title: str | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> None:
        """None이 아닌 값만 갱신합니다."""
        if alt is not None:
            self.alt = alt
        if title is not None:
            self.title = title
        if width is not None:
            self.width = width
        if height is not None:
            self.height = height
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "url": self.url.value,
            "asset_type": self.asset_type.value,
            "alt": self.alt,
            "title": self.title,
            "width": self.width,
            "height": self.height,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExtractedAsset:
        return cls(
            id=uuid.UUID(str(data["id"])),
            url=URL(data["url"]),
            asset_type=AssetType(data.get("asset_type", "image")),
            alt=data.get("alt"),
            title=data.get("title"),
            width=data.get("width"),
            height=data.get("height"),
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
        )


@dataclass(eq=False)
class ScrapedPage(Entity):
    """URL 하나에 대한 분석 결과(분류, 블록, 에셋)를 담는 Entity"""

    url: URL
    raw_content: dict[str, Any] = field(default_factory=dict)
    classification: PageClassification | None = None
    blocks: list[ContentBlock] = field(default_factory=list)
    assets: list[ExtractedAsset] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.url, URL):
            self.url = URL(self.url)

    @staticmethod
    def from_content(content: ScrapedContent) -> ScrapedPage:
        return ScrapedPage(url=URL(content.url), raw_content=content.to_dict())

    @property
    def page_type(self) -> PageType | None:
        return self.classification.page_type if self.classification else None

    @property
    def is_classified(self) -> bool:
        return self.classification is not None

    @property
    def block_count(self) -> int:
        return len(self.blocks)

    @property
    def asset_count(self) -> int:
        return len(self.assets)

    def classify(self, page_type: PageType, confidence: float) -> None:
        """페이지 분류를 기록합니다. 분류는 한 번만 가능합니다."""
        if self.classification is not None:
            raise InvalidOperationError(
                f"Page {self.url} is already classified as {self.classification}"
            )
        self.classification = PageClassification(page_type, confidence)
        self.touch()

    def add_block(self, block: ContentBlock) -> None:
        self.blocks.append(block)
        self.touch()

    def add_blocks(self, blocks: Iterable[ContentBlock]) -> None:
        self.blocks.extend(blocks)
        self.touch()

    def add_asset(self, asset: ExtractedAsset) -> None:
        self.assets.append(asset)
        self.touch()

    def add_assets(self, assets: Iterable[ExtractedAsset]) -> None:
        self.assets.extend(assets)
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "url": self.url.value,
            "page_type": self.page_type.value if self.page_type else None,
            "confidence": self.classification.confidence
            if self.classification
            else None,
            "raw_content": self.raw_content,
            "blocks": [block.to_dict() for block in self.blocks],
            "assets": [asset.to_dict() for asset in self.assets],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScrapedPage:
        classification = None
        if data.get("page_type") is not None:
            classification = PageClassification(
                PageType(data["page_type"]), data["confidence"]
            )
        return cls(
            id=uuid.UUID(str(data["id"])),
            url=URL(data["url"]),
            raw_content=dict(data.get("raw_content") or {}),
            classification=classification,
            blocks=[ContentBlock.from_dict(b) for b in data.get("blocks", [])],
            assets=[ExtractedAsset.from_dict(a) for a in data.get("assets", [])],
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
        )


# --- Aggregate Root ---


class AnalysisStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


ANALYSIS_TRANSITIONS: dict[AnalysisStatus, frozenset[AnalysisStatus]] = {
    AnalysisStatus.PENDING: frozenset(
        {AnalysisStatus.IN_PROGRESS, AnalysisStatus.FAILED}
    ),
    AnalysisStatus.IN_PROGRESS: frozenset(
        {AnalysisStatus.COMPLETED, AnalysisStatus.FAILED}
    ),
    AnalysisStatus.COMPLETED: frozenset(),
    AnalysisStatus.FAILED: frozenset({AnalysisStatus.FAILED}),
}


@dataclass(eq=False)
class SiteAnalysis(AggregateRoot):
    """사이트 전체 분석 한 번을 나타내는 Aggregate Root.

    스크랩된 페이지들을 소유하며 pending → in_progress → completed/failed
    생명주기를 관리합니다.
    """

    url: URL
    status: AnalysisStatus = AnalysisStatus.PENDING
    metadata: dict[str, Any] = field(default_factory=dict)
    pages: list[ScrapedPage] = field(default_factory=list)
    error_message: str | None = None

    def __post_init__(self):
        if not isinstance(self.url, URL):
            self.url = URL(self.url)

    @staticmethod
    def create(url: str | URL, analysis_id: uuid.UUID | None = None) -> SiteAnalysis:
        """새로운 SiteAnalysis를 pending 상태로 생성합니다."""
        if analysis_id is None:
            return SiteAnalysis(url=url)
        return SiteAnalysis(id=analysis_id, url=url)

    @property
    def is_completed(self) -> bool:
        return self.status == AnalysisStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == AnalysisStatus.FAILED

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def total_block_count(self) -> int:
        return sum(page.block_count for page in self.pages)

    @property
    def total_asset_count(self) -> int:
        return sum(page.asset_count for page in self.pages)

    def start_analysis(self) -> None:
        self.status = transition(
            self.status,
            AnalysisStatus.IN_PROGRESS,
            ANALYSIS_TRANSITIONS,
            "start analysis",
        )
        self.touch()

    def add_scraped_page(self, page: ScrapedPage) -> None:
        if self.status != AnalysisStatus.IN_PROGRESS:
            raise InvalidOperationError(
                "Cannot add pages. Analysis is not in progress. "
                f"Current status: {self.status.value}"
            )
        self.pages.append(page)
        self._record(
            SiteScraped(
                aggregate_id=self.id, page_count=len(self.pages), url=self.url.value
            )
        )

    def add_scraped_pages(self, pages: Iterable[ScrapedPage]) -> None:
        for page in pages:
            self.add_scraped_page(page)

    def notify_content_extracted(
        self, page_id: uuid.UUID, block_count: int, asset_count: int
    ) -> None:
        """관측용 신호만 기록하며 상태는 바꾸지 않습니다."""
        self.events.append(
            ContentExtracted(
                aggregate_id=self.id,
                page_id=page_id,
                block_count=block_count,
                asset_count=asset_count,
            )
        )

    def update_metadata(self, metadata: Mapping[str, Any]) -> None:
        self.metadata = {**self.metadata, **metadata}
        self.touch()

    def complete_analysis(self) -> None:
        completed = transition(
            self.status,
            AnalysisStatus.COMPLETED,
            ANALYSIS_TRANSITIONS,
            "complete analysis",
        )
        if not self.pages:
            raise BusinessRuleViolationError(
                "analysis_requires_pages", "Cannot complete analysis with no pages"
            )
        self.status = completed
        self._record(
            AnalysisCompleted(
                aggregate_id=self.id,
                total_pages=len(self.pages),
                total_blocks=self.total_block_count,
                success=True,
            )
        )
        self._increment_version()

    def fail_analysis(self, error_message: str) -> None:
        self.status = transition(
            self.status, AnalysisStatus.FAILED, ANALYSIS_TRANSITIONS, "fail analysis"
        )
        self.error_message = error_message
        self._record(
            AnalysisCompleted(
                aggregate_id=self.id,
                total_pages=len(self.pages),
                total_blocks=0,
                success=False,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "url": self.url.value,
            "status": self.status.value,
            "metadata": self.metadata,
            "pages": [page.to_dict() for page in self.pages],
            "page_count": self.page_count,
            "total_blocks": self.total_block_count,
            "total_assets": self.total_asset_count,
            "error_message": self.error_message,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def reconstitute(cls, snapshot: Mapping[str, Any]) -> SiteAnalysis:
        """저장된 스냅샷으로부터 이벤트 없이 애그리거트를 복원합니다."""
        return cls(
            id=uuid.UUID(str(snapshot["id"])),
            url=URL(snapshot["url"]),
            status=AnalysisStatus(snapshot["status"]),
            metadata=dict(snapshot.get("metadata") or {}),
            pages=[ScrapedPage.from_dict(p) for p in snapshot.get("pages", [])],
            error_message=snapshot.get("error_message"),
            version=snapshot.get("version", 1),
            created_at=parse_datetime(snapshot["created_at"]),
            updated_at=parse_datetime(snapshot["updated_at"]),
        )
