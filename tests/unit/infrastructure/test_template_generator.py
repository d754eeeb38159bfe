import pytest

from site_rebuilder.domain.content_rebuild import BricksElement, PageTemplate, TemplateType
from site_rebuilder.domain.site_discovery import ContentBlock, ContentBlockType, PageType
from site_rebuilder.infrastructure.exceptions import GenerationError
from site_rebuilder.infrastructure.generation.template_generator import (
    TemplateElementGenerator,
)
from site_rebuilder.infrastructure.templates import default_templates


@pytest.fixture
def template() -> PageTemplate:
    return next(
        t for t in default_templates() if t.template_type == TemplateType.RESTAURANT_CLASSIC
    )


def block(block_type: ContentBlockType, position: int, **content) -> ContentBlock:
    return ContentBlock(block_type=block_type, content=content, position=position)


async def test_homepage_renders_hero_and_text_sections(template: PageTemplate):
    blocks = [
        block(ContentBlockType.TEXT, 1, text="Family owned since 1982."),
        block(ContentBlockType.HERO, 0, image="https://bistro.com/hero.jpg", alt="Room", title=None),
    ]

    elements = await TemplateElementGenerator().generate(
        PageType.HOMEPAGE, blocks, template, {"title": "Bistro"}
    )

    hero, text = (BricksElement.from_dict(e) for e in elements)
    assert hero.name == "section"
    assert hero.settings["layout"] == "full-width"
    heading = hero.children[0].children[1]
    assert heading.settings["text"] == "Bistro"
    assert heading.settings["tag"] == "h1"
    assert heading.settings["_typography"]["font-family"] == "Playfair Display"
    assert text.children[0].children[0].settings["text"] == "Family owned since 1982."


async def test_adjacent_text_blocks_share_one_section(template: PageTemplate):
    blocks = [block(ContentBlockType.TEXT, i, text=f"Paragraph {i}") for i in range(3)]

    elements = await TemplateElementGenerator().generate(
        PageType.ABOUT, blocks, template, {}
    )

    assert len(elements) == 1
    assert len(elements[0]["children"][0]["children"]) == 3


async def test_menu_section_renders_each_item(template: PageTemplate):
    items = [
        {"name": "Margherita Pizza", "price": "$12.99", "description": ""},
        {"name": "Tiramisu", "price": "$7.00", "description": "House made"},
    ]
    blocks = [block(ContentBlockType.MENU_SECTION, 0, title="Menu", items=items)]

    elements = await TemplateElementGenerator().generate(PageType.MENU, blocks, template, {})

    section = BricksElement.from_dict(elements[0])
    title, grid = section.children
    assert title.settings["text"] == "Menu"
    assert list(grid.settings["_cssClasses"]) == ["menu-grid"]
    assert [len(item.children) for item in grid.children] == [2, 3]
    assert grid.children[0].children[1].settings["text"] == "$12.99"


async def test_hours_rows_are_capitalized(template: PageTemplate):
    blocks = [
        block(ContentBlockType.HOURS, 0, day="monday", hours="11am - 10pm"),
        block(ContentBlockType.HOURS, 1, day="friday", hours="11am - 11pm"),
    ]

    elements = await TemplateElementGenerator().generate(PageType.HOURS, blocks, template, {})

    rows = elements[0]["children"][1]["children"]
    assert [row["settings"]["text"] for row in rows] == [
        "Monday: 11am - 10pm",
        "Friday: 11am - 11pm",
    ]


async def test_contact_skips_missing_fields(template: PageTemplate):
    blocks = [
        block(ContentBlockType.CONTACT_INFO, 0, phone="(555) 123-4567", email=None, address=None)
    ]

    elements = await TemplateElementGenerator().generate(PageType.CONTACT, blocks, template, {})

    lines = elements[0]["children"][1]["children"]
    assert [line["settings"]["text"] for line in lines] == ["(555) 123-4567"]


async def test_page_without_renderable_blocks_gets_title_section(template: PageTemplate):
    elements = await TemplateElementGenerator().generate(PageType.GALLERY, [], template, {})

    (section,) = elements
    assert section["children"][0]["settings"]["text"] == "Gallery"
    assert section["children"][0]["settings"]["tag"] == "h1"


async def test_malformed_block_raises_generation_error(template: PageTemplate):
    blocks = [block(ContentBlockType.MENU_SECTION, 0, title="Menu")]

    with pytest.raises(GenerationError):
        await TemplateElementGenerator().generate(PageType.MENU, blocks, template, {})


async def test_generation_is_deterministic_apart_from_ids(template: PageTemplate):
    blocks = [block(ContentBlockType.TEXT, 0, text="Hello")]
    generator = TemplateElementGenerator()

    first = await generator.generate(PageType.ABOUT, blocks, template, {})
    second = await generator.generate(PageType.ABOUT, blocks, template, {})

    assert [BricksElement.from_dict(e) for e in first] == [
        BricksElement.from_dict(e) for e in second
    ]
