"""콘텐츠 블록을 템플릿 스타일의 Bricks 요소로 변환하는 결정적 생성기"""

from collections.abc import Mapping
from typing import Any, Callable, override

from loguru import logger

from site_rebuilder.domain.content_rebuild import (
    PAGE_TITLES,
    BricksElement,
    PageTemplate,
)
from site_rebuilder.domain.site_discovery import ContentBlock, ContentBlockType, PageType
from site_rebuilder.infrastructure.exceptions import GenerationError
from site_rebuilder.infrastructure.generation.base import ElementGenerator
from site_rebuilder.infrastructure.logging_utils import log_function_call

Renderer = Callable[[list[ContentBlock], PageTemplate, Mapping[str, Any]], BricksElement]


def _section_settings(template: PageTemplate, *, inverted: bool = False) -> dict[str, Any]:
    colors = template.color_scheme
    return {
        "_background": {"color": {"hex": colors.primary if inverted else colors.background}},
        "_typography": {
            "font-family": template.typography.body_font,
            "color": {"hex": colors.background if inverted else colors.text},
        },
    }


def _heading(text: str, template: PageTemplate, tag: str = "h2") -> BricksElement:
    return BricksElement(
        name="heading",
        settings={
            "text": text,
            "tag": tag,
            "_typography": {
                "font-family": template.typography.heading_font,
                "color": {"hex": template.color_scheme.accent},
            },
        },
    )


def _render_hero(blocks, template, metadata) -> BricksElement:
    (block,) = blocks
    title = block.content.get("title") or metadata.get("title") or PAGE_TITLES[PageType.HOMEPAGE]
    return BricksElement.section(
        {**_section_settings(template, inverted=True), "layout": template.hero_layout},
        [
            BricksElement.container(
                [
                    BricksElement.image(
                        block.content["image"], block.content.get("alt"), ["hero-image"]
                    ),
                    _heading(title, template, tag="h1"),
                    BricksElement.button("View Menu", "/menu", ["hero-cta"]),
                ]
            )
        ],
    )


def _render_text(blocks, template, metadata) -> BricksElement:
    return BricksElement.section(
        _section_settings(template),
        [
            BricksElement.container(
                [BricksElement.text(block.content["text"]) for block in blocks]
            )
        ],
    )


def _render_menu(blocks, template, metadata) -> BricksElement:
    children: list[BricksElement] = []
    for block in blocks:
        children.append(_heading(block.content.get("title") or "Menu", template))
        items = [
            BricksElement.container(
                [
                    BricksElement.heading(item["name"], tag="h3", css_classes=["menu-item-name"]),
                    BricksElement.text(item["price"], css_classes=["menu-item-price"]),
                ]
                + (
                    [BricksElement.text(item["description"], ["menu-item-description"])]
                    if item.get("description")
                    else []
                ),
                {"_cssClasses": ["menu-item"]},
            )
            for item in block.content["items"]
        ]
        children.append(
            BricksElement.container(items, {"_cssClasses": [f"menu-{template.menu_layout}"]})
        )
    return BricksElement.section(_section_settings(template), children)


def _render_contact(blocks, template, metadata) -> BricksElement:
    lines: list[BricksElement] = []
    for block in blocks:
        for key in ("phone", "email", "address"):
            if block.content.get(key):
                lines.append(BricksElement.text(block.content[key], [f"contact-{key}"]))
    return BricksElement.section(
        _section_settings(template),
        [_heading(PAGE_TITLES[PageType.CONTACT], template), BricksElement.container(lines)],
    )


def _render_gallery(blocks, template, metadata) -> BricksElement:
    images = [
        BricksElement.image(image["url"], image.get("alt"), ["gallery-image"])
        for block in blocks
        for image in block.content["images"]
    ]
    return BricksElement.section(
        _section_settings(template),
        [
            _heading(PAGE_TITLES[PageType.GALLERY], template),
            BricksElement.container(
                images, {"_cssClasses": [f"gallery-{template.gallery_layout}"]}
            ),
        ],
    )


def _render_hours(blocks, template, metadata) -> BricksElement:
    rows = [
        BricksElement.text(
            f"{block.content['day'].capitalize()}: {block.content['hours']}", ["hours-row"]
        )
        for block in blocks
    ]
    return BricksElement.section(
        _section_settings(template),
        [_heading("Hours", template), BricksElement.container(rows)],
    )


RENDERERS: dict[ContentBlockType, Renderer] = {
    ContentBlockType.HERO: _render_hero,
    ContentBlockType.TEXT: _render_text,
    ContentBlockType.MENU_SECTION: _render_menu,
    ContentBlockType.CONTACT_INFO: _render_contact,
    ContentBlockType.GALLERY: _render_gallery,
    ContentBlockType.HOURS: _render_hours,
}

# 같은 섹션으로 묶는 블록 타입
GROUPED_TYPES = frozenset(
    {ContentBlockType.TEXT, ContentBlockType.HOURS, ContentBlockType.CONTACT_INFO}
)


def _group_blocks(blocks: list[ContentBlock]) -> list[list[ContentBlock]]:
    """위치 순으로 정렬한 뒤, 인접한 같은 타입의 묶음 가능한 블록을 하나의 그룹으로 모읍니다."""
    groups: list[list[ContentBlock]] = []
    for block in sorted(blocks, key=lambda b: b.position):
        if (
            groups
            and block.block_type in GROUPED_TYPES
            and groups[-1][0].block_type == block.block_type
        ):
            groups[-1].append(block)
        else:
            groups.append([block])
    return groups


class TemplateElementGenerator(ElementGenerator):
    """템플릿의 색상과 타이포그래피로 블록을 렌더링합니다. 외부 호출이 없습니다."""

    @override
    @log_function_call
    async def generate(
        self,
        page_type: PageType,
        blocks: list[ContentBlock],
        template: PageTemplate,
        metadata: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        sections: list[BricksElement] = []
        for group in _group_blocks(blocks):
            renderer = RENDERERS.get(group[0].block_type)
            if renderer is None:
                logger.debug(
                    f"No renderer for block type {group[0].block_type.value}, skipping"
                )
                continue
            try:
                sections.append(renderer(group, template, metadata))
            except (KeyError, TypeError, ValueError) as e:
                raise GenerationError(
                    f"Cannot render {group[0].block_type.value} block for "
                    f"{page_type.value} page: {e!r}"
                ) from e

        if not sections:
            sections.append(
                BricksElement.section(
                    _section_settings(template),
                    [_heading(PAGE_TITLES[page_type], template, tag="h1")],
                )
            )
        return [section.to_dict() for section in sections]
