import uuid

import pytest

from site_rebuilder.domain.content_rebuild import (
    BricksElement,
    BricksPageStructure,
    RebuildStatus,
    SiteRebuild,
)
from site_rebuilder.domain.events import PreviewCreated, RebuildGenerated
from site_rebuilder.domain.exceptions import (
    BusinessRuleViolationError,
    InvalidOperationError,
)
from site_rebuilder.domain.site_discovery import PageType


@pytest.fixture
def rebuild() -> SiteRebuild:
    return SiteRebuild.create(uuid.uuid4(), uuid.uuid4())


def make_page(page_type: PageType, *texts: str) -> BricksPageStructure:
    elements = [BricksElement.text(text) for text in texts] or [BricksElement.text("x")]
    return BricksPageStructure.for_page_type(page_type, elements)


def test_new_rebuild_is_pending(rebuild: SiteRebuild):
    assert rebuild.status == RebuildStatus.PENDING
    assert rebuild.page_count == 0
    assert rebuild.preview_urls is None
    assert rebuild.version == 1


def test_create_with_explicit_id():
    rebuild_id = uuid.uuid4()

    assert SiteRebuild.create(uuid.uuid4(), uuid.uuid4(), rebuild_id).id == rebuild_id


def test_adding_same_page_type_twice_keeps_last_page(rebuild: SiteRebuild):
    first = make_page(PageType.MENU, "old")
    second = make_page(PageType.MENU, "new", "newer")

    rebuild.add_page(first)
    rebuild.add_page(second)

    assert rebuild.page_count == 1
    assert rebuild.get_page(PageType.MENU) is second
    assert rebuild.total_element_count == 2


def test_add_pages_and_lookups(rebuild: SiteRebuild):
    rebuild.add_pages(
        [make_page(PageType.HOMEPAGE, "a"), make_page(PageType.CONTACT, "b", "c")]
    )

    assert rebuild.has_page(PageType.HOMEPAGE)
    assert not rebuild.has_page(PageType.GALLERY)
    assert rebuild.get_page(PageType.GALLERY) is None
    assert rebuild.total_element_count == 3


def test_complete_generation_then_preview(rebuild: SiteRebuild):
    rebuild.add_page(make_page(PageType.HOMEPAGE))

    rebuild.complete_generation()
    assert rebuild.status == RebuildStatus.GENERATED
    assert rebuild.version == 2

    rebuild.set_preview_urls({PageType.HOMEPAGE: "https://preview.test/r/home"})
    assert rebuild.is_ready
    assert rebuild.preview_urls == {"homepage": "https://preview.test/r/home"}
    assert rebuild.version == 3

    generated, preview = rebuild.pull_events()
    assert isinstance(generated, RebuildGenerated)
    assert generated.page_count == 1
    assert generated.template_id == rebuild.template_id
    assert isinstance(preview, PreviewCreated)
    assert preview.preview_urls == {"homepage": "https://preview.test/r/home"}


def test_complete_generation_without_pages_is_rejected(rebuild: SiteRebuild):
    with pytest.raises(BusinessRuleViolationError):
        rebuild.complete_generation()

    assert rebuild.status == RebuildStatus.PENDING
    assert not rebuild.has_events()


def test_preview_before_generation_raises(rebuild: SiteRebuild):
    with pytest.raises(InvalidOperationError):
        rebuild.set_preview_urls({"homepage": "https://preview.test"})


def test_second_generation_raises(rebuild: SiteRebuild):
    rebuild.add_page(make_page(PageType.HOMEPAGE))
    rebuild.complete_generation()

    with pytest.raises(InvalidOperationError):
        rebuild.complete_generation()


def test_fail_does_not_bump_version(rebuild: SiteRebuild):
    rebuild.fail("Template rendering failed")

    assert rebuild.is_failed
    assert rebuild.error_message == "Template rendering failed"
    assert rebuild.version == 1
    assert not rebuild.has_events()


def test_fail_is_allowed_after_preview(rebuild: SiteRebuild):
    rebuild.add_page(make_page(PageType.HOMEPAGE))
    rebuild.complete_generation()
    rebuild.set_preview_urls({"homepage": "https://preview.test"})

    rebuild.fail("Preview expired")

    assert rebuild.status == RebuildStatus.FAILED


def test_add_page_after_failure_raises(rebuild: SiteRebuild):
    rebuild.fail("boom")

    with pytest.raises(InvalidOperationError):
        rebuild.add_page(make_page(PageType.MENU))


def test_reconstitute_round_trip(rebuild: SiteRebuild):
    rebuild.add_pages([make_page(PageType.HOMEPAGE, "a"), make_page(PageType.MENU, "b")])
    rebuild.complete_generation()
    rebuild.set_preview_urls({"homepage": "https://p/home", "menu": "https://p/menu"})

    restored = SiteRebuild.reconstitute(rebuild.to_dict())

    assert restored == rebuild
    assert restored.status == RebuildStatus.PREVIEW_READY
    assert restored.version == 3
    assert set(restored.pages) == {PageType.HOMEPAGE, PageType.MENU}
    assert restored.get_page(PageType.MENU).elements == rebuild.get_page(PageType.MENU).elements
    assert restored.preview_urls == rebuild.preview_urls
    assert not restored.has_events()
