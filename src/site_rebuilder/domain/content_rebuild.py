from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, override

from site_rebuilder.domain.base import AggregateRoot, Entity, parse_datetime, transition
from site_rebuilder.domain.events import PreviewCreated, RebuildGenerated
from site_rebuilder.domain.exceptions import (
    BusinessRuleViolationError,
    InvalidOperationError,
    ValidationError,
)
from site_rebuilder.domain.site_discovery import PageType

# --- Bricks element tree ---


class BricksElementType(Enum):
    SECTION = "section"
    CONTAINER = "container"
    BLOCK = "block"
    DIV = "div"
    HEADING = "heading"
    TEXT = "text-basic"
    IMAGE = "image"
    BUTTON = "button"
    DIVIDER = "divider"


HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def _new_element_id() -> str:
    return uuid.uuid4().hex


def _with_classes(settings: dict[str, Any], css_classes: Sequence[str] | None):
    if css_classes:
        settings["_cssClasses"] = list(css_classes)
    return settings


@dataclass(frozen=True)
class BricksElement:
    """렌더링될 UI 요소 하나를 나타내는 재귀적 불변 Value Object.

    id는 생성 시 부여되지만 동등성 비교에는 쓰이지 않습니다.
    name, settings, children(깊은 비교)이 같으면 같은 요소입니다.
    """

    name: str
    settings: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[BricksElement, ...] = ()
    id: str = field(default_factory=_new_element_id, compare=False)

    def __post_init__(self):
        name = self.name.value if isinstance(self.name, BricksElementType) else self.name
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Bricks element name cannot be empty")
        if not isinstance(self.settings, Mapping):
            raise ValidationError("Bricks element settings must be a mapping")
        children = tuple(self.children)
        for child in children:
            if not isinstance(child, BricksElement):
                raise ValidationError(
                    f"Bricks element children must be elements, not {type(child).__name__}"
                )
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "settings", _freeze(self.settings))
        object.__setattr__(self, "children", children)

    @override
    def __hash__(self):
        return hash((self.name, len(self.children)))

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def child_count(self) -> int:
        """직계 자식과 모든 후손의 수"""
        return sum(1 + child.child_count for child in self.children)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "settings": _thaw(self.settings),
        }
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BricksElement:
        """생성 엔진이 반환한 요소 배열 형태(dict)로부터 트리를 만듭니다."""
        if not isinstance(data, Mapping) or "name" not in data:
            raise ValidationError("Bricks element data must be a mapping with a name")
        children = tuple(cls.from_dict(child) for child in data.get("children") or ())
        if data.get("id"):
            return cls(
                name=data["name"],
                settings=data.get("settings") or {},
                children=children,
                id=str(data["id"]),
            )
        return cls(
            name=data["name"], settings=data.get("settings") or {}, children=children
        )

    # 자주 쓰는 요소 형태를 위한 팩토리

    @classmethod
    def section(
        cls, settings: Mapping[str, Any], children: Iterable[BricksElement]
    ) -> BricksElement:
        return cls(
            name=BricksElementType.SECTION.value,
            settings={"tag": "section", **settings},
            children=tuple(children),
        )

    @classmethod
    def container(
        cls,
        children: Iterable[BricksElement],
        settings: Mapping[str, Any] | None = None,
    ) -> BricksElement:
        return cls(
            name=BricksElementType.CONTAINER.value,
            settings=dict(settings or {}),
            children=tuple(children),
        )

    @classmethod
    def heading(
        cls, text: str, tag: str = "h2", css_classes: Sequence[str] | None = None
    ) -> BricksElement:
        if tag not in HEADING_TAGS:
            raise ValidationError(f"Invalid heading tag: {tag}")
        return cls(
            name=BricksElementType.HEADING.value,
            settings=_with_classes({"text": text, "tag": tag}, css_classes),
        )

    @classmethod
    def text(
        cls, content: str, css_classes: Sequence[str] | None = None
    ) -> BricksElement:
        return cls(
            name=BricksElementType.TEXT.value,
            settings=_with_classes({"text": content}, css_classes),
        )

    @classmethod
    def image(
        cls,
        url: str,
        alt: str | None = None,
        css_classes: Sequence[str] | None = None,
    ) -> BricksElement:
        return cls(
            name=BricksElementType.IMAGE.value,
            settings=_with_classes({"image": {"url": url, "alt": alt}}, css_classes),
        )

    @classmethod
    def button(
        cls, text: str, link: str, css_classes: Sequence[str] | None = None
    ) -> BricksElement:
        return cls(
            name=BricksElementType.BUTTON.value,
            settings=_with_classes({"text": text, "link": {"url": link}}, css_classes),
        )


PAGE_TITLES: dict[PageType, str] = {
    PageType.HOMEPAGE: "Home",
    PageType.MENU: "Our Menu",
    PageType.ABOUT: "About Us",
    PageType.CONTACT: "Contact Us",
    PageType.GALLERY: "Gallery",
    PageType.HOURS: "Hours & Location",
    PageType.UNKNOWN: "Page",
}

PAGE_SLUGS: dict[PageType, str] = {PageType.HOMEPAGE: "home"}


@dataclass(eq=False)
class BricksPageStructure(Entity):
    """요소 트리로 구성된 생성 페이지 하나를 나타내는 Entity"""

    page_type: PageType
    title: str
    slug: str
    elements: list[BricksElement] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.page_type, PageType):
            try:
                self.page_type = PageType(self.page_type)
            except ValueError as e:
                raise ValidationError(f"Invalid page type: {self.page_type}") from e

    @staticmethod
    def for_page_type(
        page_type: PageType, elements: Iterable[BricksElement]
    ) -> BricksPageStructure:
        """페이지 타입의 기본 제목과 슬러그로 페이지를 만듭니다."""
        return BricksPageStructure(
            page_type=page_type,
            title=PAGE_TITLES[page_type],
            slug=PAGE_SLUGS.get(page_type, page_type.value),
            elements=list(elements),
        )

    @property
    def element_count(self) -> int:
        """루트 요소와 모든 후손 요소의 수"""
        return sum(1 + element.child_count for element in self.elements)

    def add_element(self, element: BricksElement) -> None:
        self.elements.append(element)
        self.touch()

    def update_title(self, new_title: str) -> None:
        self.title = new_title
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "page_type": self.page_type.value,
            "title": self.title,
            "slug": self.slug,
            "elements": [element.to_dict() for element in self.elements],
            "element_count": self.element_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BricksPageStructure:
        return cls(
            id=uuid.UUID(str(data["id"])),
            page_type=PageType(data["page_type"]),
            title=data["title"],
            slug=data["slug"],
            elements=[BricksElement.from_dict(e) for e in data.get("elements", [])],
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
        )


# --- Template ---


class TemplateType(Enum):
    RESTAURANT_CLASSIC = "restaurant_classic"
    RESTAURANT_MODERN = "restaurant_modern"
    CAFE = "cafe"
    FINE_DINING = "fine_dining"


@dataclass(frozen=True)
class ColorScheme:
    primary: str
    secondary: str
    accent: str
    background: str
    text: str


@dataclass(frozen=True)
class Typography:
    heading_font: str
    body_font: str


@dataclass(eq=False)
class PageTemplate(Entity):
    """재생성에 적용되는 레이아웃/색상/타이포그래피 설정"""

    name: str
    template_type: TemplateType
    hero_layout: str
    menu_layout: str
    gallery_layout: str
    color_scheme: ColorScheme
    typography: Typography
    description: str | None = None
    is_active: bool = True

    def activate(self) -> None:
        self.is_active = True
        self.touch()

    def deactivate(self) -> None:
        self.is_active = False
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "template_type": self.template_type.value,
            "description": self.description,
            "hero_layout": self.hero_layout,
            "menu_layout": self.menu_layout,
            "gallery_layout": self.gallery_layout,
            "color_scheme": vars(self.color_scheme).copy(),
            "typography": vars(self.typography).copy(),
            "is_active": self.is_active,
        }


# --- Aggregate Root ---


class RebuildStatus(Enum):
    PENDING = "pending"
    GENERATED = "generated"
    PREVIEW_READY = "preview_ready"
    FAILED = "failed"


REBUILD_TRANSITIONS: dict[RebuildStatus, frozenset[RebuildStatus]] = {
    RebuildStatus.PENDING: frozenset({RebuildStatus.GENERATED, RebuildStatus.FAILED}),
    RebuildStatus.GENERATED: frozenset(
        {RebuildStatus.PREVIEW_READY, RebuildStatus.FAILED}
    ),
    RebuildStatus.PREVIEW_READY: frozenset({RebuildStatus.FAILED}),
    RebuildStatus.FAILED: frozenset({RebuildStatus.FAILED}),
}


@dataclass(eq=False)
class SiteRebuild(AggregateRoot):
    """완료된 분석과 템플릿으로부터 페이지들을 생성하는 Aggregate Root.

    페이지는 페이지 타입을 키로 저장되며, 같은 타입을 다시 추가하면
    이전 페이지를 덮어씁니다(last-write-wins).
    """

    site_analysis_id: uuid.UUID
    template_id: uuid.UUID
    status: RebuildStatus = RebuildStatus.PENDING
    pages: dict[PageType, BricksPageStructure] = field(default_factory=dict)
    preview_urls: dict[str, str] | None = None
    error_message: str | None = None

    @staticmethod
    def create(
        site_analysis_id: uuid.UUID,
        template_id: uuid.UUID,
        rebuild_id: uuid.UUID | None = None,
    ) -> SiteRebuild:
        if rebuild_id is None:
            return SiteRebuild(site_analysis_id=site_analysis_id, template_id=template_id)
        return SiteRebuild(
            id=rebuild_id, site_analysis_id=site_analysis_id, template_id=template_id
        )

    @property
    def is_ready(self) -> bool:
        return self.status == RebuildStatus.PREVIEW_READY

    @property
    def is_failed(self) -> bool:
        return self.status == RebuildStatus.FAILED

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def total_element_count(self) -> int:
        return sum(page.element_count for page in self.pages.values())

    def get_page(self, page_type: PageType) -> BricksPageStructure | None:
        return self.pages.get(page_type)

    def has_page(self, page_type: PageType) -> bool:
        return page_type in self.pages

    def add_page(self, page: BricksPageStructure) -> None:
        if self.status == RebuildStatus.FAILED:
            raise InvalidOperationError("Cannot add pages to failed rebuild")
        self.pages[page.page_type] = page
        self.touch()

    def add_pages(self, pages: Iterable[BricksPageStructure]) -> None:
        for page in pages:
            self.add_page(page)

    def complete_generation(self) -> None:
        generated = transition(
            self.status,
            RebuildStatus.GENERATED,
            REBUILD_TRANSITIONS,
            "complete generation",
        )
        if not self.pages:
            raise BusinessRuleViolationError(
                "rebuild_requires_pages", "Cannot complete rebuild with no pages"
            )
        self.status = generated
        self._record(
            RebuildGenerated(
                aggregate_id=self.id,
                page_count=len(self.pages),
                template_id=self.template_id,
            )
        )
        self._increment_version()

    def set_preview_urls(self, urls: Mapping[PageType | str, str]) -> None:
        self.status = transition(
            self.status,
            RebuildStatus.PREVIEW_READY,
            REBUILD_TRANSITIONS,
            "set preview URLs",
        )
        self.preview_urls = {
            key.value if isinstance(key, PageType) else key: url
            for key, url in urls.items()
        }
        self._record(
            PreviewCreated(aggregate_id=self.id, preview_urls=dict(self.preview_urls))
        )
        self._increment_version()

    def fail(self, error_message: str) -> None:
        """버전을 올리지 않는 실패 처리입니다."""
        self.status = transition(
            self.status, RebuildStatus.FAILED, REBUILD_TRANSITIONS, "fail rebuild"
        )
        self.error_message = error_message
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "site_analysis_id": str(self.site_analysis_id),
            "template_id": str(self.template_id),
            "status": self.status.value,
            "pages": [page.to_dict() for page in self.pages.values()],
            "page_count": self.page_count,
            "total_elements": self.total_element_count,
            "preview_urls": self.preview_urls,
            "error_message": self.error_message,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def reconstitute(cls, snapshot: Mapping[str, Any]) -> SiteRebuild:
        pages = [BricksPageStructure.from_dict(p) for p in snapshot.get("pages", [])]
        preview_urls = snapshot.get("preview_urls")
        return cls(
            id=uuid.UUID(str(snapshot["id"])),
            site_analysis_id=uuid.UUID(str(snapshot["site_analysis_id"])),
            template_id=uuid.UUID(str(snapshot["template_id"])),
            status=RebuildStatus(snapshot["status"]),
            pages={page.page_type: page for page in pages},
            preview_urls=dict(preview_urls) if preview_urls is not None else None,
            error_message=snapshot.get("error_message"),
            version=snapshot.get("version", 1),
            created_at=parse_datetime(snapshot["created_at"]),
            updated_at=parse_datetime(snapshot["updated_at"]),
        )
