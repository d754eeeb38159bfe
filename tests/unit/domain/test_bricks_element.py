import pytest

from site_rebuilder.domain.content_rebuild import (
    BricksElement,
    BricksElementType,
    BricksPageStructure,
)
from site_rebuilder.domain.exceptions import ValidationError
from site_rebuilder.domain.site_discovery import PageType


def make_hero() -> BricksElement:
    return BricksElement.section(
        {"background": {"color": "#111"}},
        [
            BricksElement.container(
                [
                    BricksElement.heading("Bistro", tag="h1"),
                    BricksElement.button("Reserve", "/contact"),
                ]
            )
        ],
    )


def test_elements_with_same_structure_are_equal_regardless_of_id():
    first = make_hero()
    second = make_hero()

    assert first.id != second.id
    assert first == second
    assert hash(first) == hash(second)


def test_nested_settings_difference_breaks_equality():
    first = BricksElement.section({"background": {"color": "#111"}}, [])
    second = BricksElement.section({"background": {"color": "#222"}}, [])

    assert first != second


def test_child_order_matters_for_equality():
    a = BricksElement.text("a")
    b = BricksElement.text("b")

    assert BricksElement.container([a, b]) != BricksElement.container([b, a])


def test_settings_are_read_only_after_construction():
    settings = {"text": "Hello", "tag": "h2"}
    element = BricksElement(name="heading", settings=settings)
    settings["text"] = "Changed"

    assert element.settings["text"] == "Hello"
    with pytest.raises(TypeError):
        element.settings["text"] = "Mutated"


def test_child_count_includes_all_descendants():
    hero = make_hero()

    assert hero.has_children
    assert hero.child_count == 3
    assert not BricksElement.text("leaf").has_children


def test_enum_name_is_stored_as_value():
    element = BricksElement(name=BricksElementType.DIVIDER)

    assert element.name == "divider"


@pytest.mark.parametrize("name", ["", "   "])
def test_empty_name_is_rejected(name: str):
    with pytest.raises(ValidationError):
        BricksElement(name=name)


def test_non_element_children_are_rejected():
    with pytest.raises(ValidationError):
        BricksElement(name="container", children=({"name": "text"},))


@pytest.mark.parametrize("tag", ["h1", "h3", "h6"])
def test_heading_accepts_valid_tags(tag: str):
    assert BricksElement.heading("Title", tag=tag).settings["tag"] == tag


@pytest.mark.parametrize("tag", ["h7", "p", "H1"])
def test_heading_rejects_invalid_tags(tag: str):
    with pytest.raises(ValidationError):
        BricksElement.heading("Title", tag=tag)


def test_factories_build_expected_settings():
    image = BricksElement.image("https://bistro.com/a.jpg", alt="Pasta", css_classes=["img"])
    button = BricksElement.button("Call", "tel:5551234567")
    section = BricksElement.section({"padding": "40px"}, [])

    assert image.name == "image"
    assert image.settings["image"]["url"] == "https://bistro.com/a.jpg"
    assert list(image.settings["_cssClasses"]) == ["img"]
    assert button.settings["link"]["url"] == "tel:5551234567"
    assert section.settings["tag"] == "section"
    assert "_cssClasses" not in BricksElement.text("plain").settings


def test_to_dict_omits_empty_children_and_thaws_settings():
    data = make_hero().to_dict()

    assert data["name"] == "section"
    assert data["settings"] == {"tag": "section", "background": {"color": "#111"}}
    assert isinstance(data["settings"]["background"], dict)
    heading = data["children"][0]["children"][0]
    assert "children" not in heading
    assert heading["settings"] == {"text": "Bistro", "tag": "h1"}


def test_from_dict_rebuilds_equal_tree_and_keeps_ids():
    hero = make_hero()

    restored = BricksElement.from_dict(hero.to_dict())

    assert restored == hero
    assert restored.id == hero.id
    assert restored.children[0].children[1].id == hero.children[0].children[1].id


def test_from_dict_without_id_assigns_new_one():
    element = BricksElement.from_dict({"name": "text-basic", "settings": {"text": "Hi"}})

    assert element.id
    assert element == BricksElement.text("Hi")


def test_from_dict_without_name_raises():
    with pytest.raises(ValidationError):
        BricksElement.from_dict({"settings": {}})


def test_page_structure_counts_every_element():
    page = BricksPageStructure.for_page_type(
        PageType.HOMEPAGE, [make_hero(), BricksElement.text("Footer")]
    )

    assert page.title == "Home"
    assert page.slug == "home"
    assert page.element_count == 5


def test_page_structure_slug_defaults_to_page_type_value():
    page = BricksPageStructure.for_page_type(PageType.MENU, [])

    assert page.title == "Our Menu"
    assert page.slug == "menu"
    assert page.element_count == 0


def test_page_structure_round_trip():
    page = BricksPageStructure.for_page_type(PageType.ABOUT, [make_hero()])
    page.update_title("Our Story")

    restored = BricksPageStructure.from_dict(page.to_dict())

    assert restored == page
    assert restored.title == "Our Story"
    assert restored.elements == page.elements
