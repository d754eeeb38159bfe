"""휴리스틱 페이지 분류기와 페이지 타입별 콘텐츠 블록 추출기.

모든 함수는 순수 함수이므로 서로 다른 페이지에 대해 동시에 호출해도 안전합니다.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from site_rebuilder.domain.site_discovery import (
    URL,
    AssetType,
    ContentBlock,
    ContentBlockType,
    ExtractedAsset,
    PageClassification,
    PageType,
    ScrapedContent,
)

HOMEPAGE_PATHS = frozenset({"", "/", "/home", "/index.html"})
MENU_KEYWORDS = ("menu", "food", "drink", "appetizer", "entree", "dessert")
ABOUT_KEYWORDS = ("about", "story", "history", "our team", "mission")
CONTACT_KEYWORDS = ("contact", "location", "address", "phone", "email")
GALLERY_KEYWORDS = ("gallery", "photos", "images", "pictures")
HOURS_KEYWORDS = ("hours", "schedule", "open", "closed")
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

MIN_MENU_PRICES = 6
MIN_GALLERY_IMAGES = 11
MIN_WEEKDAYS = 3
MIN_PARAGRAPH_LENGTH = 50
MAX_GENERIC_BLOCKS = 5

PRICE_PATTERN = re.compile(r"\$\d+(?:\.\d{2})?")
PHONE_PATTERN = re.compile(r"\(\d{3}\)\s?\d{3}-\d{4}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
ADDRESS_PATTERN = re.compile(r"\d+\s+[A-Za-z\s]+,\s+[A-Za-z\s]+,\s+[A-Z]{2}\s+\d{5}")
WEEKDAY_PATTERN = re.compile("|".join(WEEKDAYS), re.IGNORECASE)
BLANK_LINE_PATTERN = re.compile(r"\n\s*\n")
DAY_HOURS_PATTERNS = {
    day: re.compile(rf"{day}:?\s*([\d:apm\s-]+)", re.IGNORECASE) for day in WEEKDAYS
}

UNKNOWN_CONFIDENCE = 0.5


@dataclass(frozen=True)
class _PageSignals:
    """분류 규칙이 참조하는 소문자 정규화된 입력"""

    url: str
    path: str
    title: str
    text: str
    image_count: int


def _contains_any(haystack: str, needles: tuple[str, ...]) -> bool:
    return any(needle in haystack for needle in needles)


def _is_homepage(s: _PageSignals) -> bool:
    return s.path in HOMEPAGE_PATHS


def _is_menu(s: _PageSignals) -> bool:
    if "menu" in s.url:
        return True
    if "menu" in s.title and _contains_any(s.text, MENU_KEYWORDS):
        return True
    return len(PRICE_PATTERN.findall(s.text)) >= MIN_MENU_PRICES


def _is_about(s: _PageSignals) -> bool:
    return (
        "about" in s.url
        or "story" in s.url
        or _contains_any(s.title, ABOUT_KEYWORDS)
    )


def _is_contact(s: _PageSignals) -> bool:
    if "contact" in s.url or "location" in s.url:
        return True
    if _contains_any(s.title, CONTACT_KEYWORDS):
        return True
    return bool(PHONE_PATTERN.search(s.text) and EMAIL_PATTERN.search(s.text))


def _is_gallery(s: _PageSignals) -> bool:
    return (
        "gallery" in s.url
        or "photos" in s.url
        or _contains_any(s.title, GALLERY_KEYWORDS)
        or s.image_count >= MIN_GALLERY_IMAGES
    )


def _is_hours(s: _PageSignals) -> bool:
    if "hours" in s.url or _contains_any(s.title, HOURS_KEYWORDS):
        return True
    days = {match.lower() for match in WEEKDAY_PATTERN.findall(s.text)}
    return len(days) >= MIN_WEEKDAYS


# 순서가 중요합니다: 먼저 일치하는 규칙이 이깁니다.
CLASSIFICATION_RULES: tuple[
    tuple[PageType, float, Callable[[_PageSignals], bool]], ...
] = (
    (PageType.HOMEPAGE, 0.95, _is_homepage),
    (PageType.MENU, 0.90, _is_menu),
    (PageType.ABOUT, 0.85, _is_about),
    (PageType.CONTACT, 0.85, _is_contact),
    (PageType.GALLERY, 0.80, _is_gallery),
    (PageType.HOURS, 0.80, _is_hours),
)


def classify(
    url: str, title: str | None, text: str, image_count: int = 0
) -> PageClassification:
    """URL, 제목, 본문, 이미지 수로 페이지 타입과 신뢰도를 판정합니다."""
    lowered_url = url.lower()
    signals = _PageSignals(
        url=lowered_url,
        path=urlsplit(lowered_url).path,
        title=(title or "").lower(),
        text=(text or "").lower(),
        image_count=image_count,
    )
    for page_type, confidence, matches in CLASSIFICATION_RULES:
        if matches(signals):
            return PageClassification(page_type, confidence)
    return PageClassification(PageType.UNKNOWN, UNKNOWN_CONFIDENCE)


def classify_page(content: ScrapedContent) -> PageClassification:
    return classify(content.url, content.title, content.text, len(content.images))


# --- Content block extraction ---


def _block(block_type: ContentBlockType, content: dict[str, Any], position: int):
    return ContentBlock(block_type=block_type, content=content, position=position)


def _paragraphs(text: str) -> list[str]:
    """빈 줄로 나눈 문단 중 충분히 긴 것만 반환합니다."""
    chunks = (chunk.strip() for chunk in BLANK_LINE_PATTERN.split(text))
    return [chunk for chunk in chunks if len(chunk) > MIN_PARAGRAPH_LENGTH]


def _extract_homepage(content: ScrapedContent) -> list[ContentBlock]:
    blocks: list[ContentBlock] = []
    if content.images:
        hero = content.images[0]
        blocks.append(
            _block(
                ContentBlockType.HERO,
                {"image": hero.url, "alt": hero.alt, "title": content.title},
                len(blocks),
            )
        )
    long_lines = [
        line.strip()
        for line in content.text.split("\n")
        if len(line.strip()) > MIN_PARAGRAPH_LENGTH
    ]
    if long_lines:
        blocks.append(_block(ContentBlockType.TEXT, {"text": long_lines[0]}, len(blocks)))
    return blocks


def _extract_menu(content: ScrapedContent) -> list[ContentBlock]:
    items: list[dict[str, str]] = []
    for line in content.text.split("\n"):
        if not 10 < len(line) < 200:
            continue
        match = PRICE_PATTERN.search(line)
        if not match:
            continue
        price = match.group(0)
        name = line.replace(price, "", 1).strip()
        if name:
            items.append({"name": name, "price": price, "description": ""})
    if not items:
        return []
    return [_block(ContentBlockType.MENU_SECTION, {"title": "Menu", "items": items}, 0)]


def _extract_about(content: ScrapedContent) -> list[ContentBlock]:
    return [
        _block(ContentBlockType.TEXT, {"text": paragraph}, index)
        for index, paragraph in enumerate(_paragraphs(content.text))
    ]


def _extract_contact(content: ScrapedContent) -> list[ContentBlock]:
    phone = PHONE_PATTERN.search(content.text)
    email = EMAIL_PATTERN.search(content.text)
    address = ADDRESS_PATTERN.search(content.text)
    return [
        _block(
            ContentBlockType.CONTACT_INFO,
            {
                "phone": phone.group(0) if phone else None,
                "email": email.group(0) if email else None,
                "address": address.group(0) if address else None,
            },
            0,
        )
    ]


def _extract_gallery(content: ScrapedContent) -> list[ContentBlock]:
    if not content.images:
        return []
    images = [{"url": image.url, "alt": image.alt} for image in content.images]
    return [_block(ContentBlockType.GALLERY, {"images": images}, 0)]


def _extract_hours(content: ScrapedContent) -> list[ContentBlock]:
    blocks: list[ContentBlock] = []
    for day, pattern in DAY_HOURS_PATTERNS.items():
        match = pattern.search(content.text)
        if not match:
            continue
        hours = match.group(1).strip()
        if hours:
            blocks.append(
                _block(ContentBlockType.HOURS, {"day": day, "hours": hours}, len(blocks))
            )
    return blocks


def _extract_generic(content: ScrapedContent) -> list[ContentBlock]:
    paragraphs = _paragraphs(content.text)[:MAX_GENERIC_BLOCKS]
    return [
        _block(ContentBlockType.TEXT, {"text": paragraph}, index)
        for index, paragraph in enumerate(paragraphs)
    ]


BLOCK_EXTRACTORS: dict[PageType, Callable[[ScrapedContent], list[ContentBlock]]] = {
    PageType.HOMEPAGE: _extract_homepage,
    PageType.MENU: _extract_menu,
    PageType.ABOUT: _extract_about,
    PageType.CONTACT: _extract_contact,
    PageType.GALLERY: _extract_gallery,
    PageType.HOURS: _extract_hours,
}


def extract_blocks(content: ScrapedContent, page_type: PageType) -> list[ContentBlock]:
    """분류된 페이지 타입에 맞는 콘텐츠 블록을 추출합니다."""
    extractor = BLOCK_EXTRACTORS.get(page_type, _extract_generic)
    return extractor(content)


def extract_assets(content: ScrapedContent) -> list[ExtractedAsset]:
    """유효한 절대 URL을 가진 이미지만 에셋으로 변환합니다."""
    return [
        ExtractedAsset(
            url=URL(image.url),
            asset_type=AssetType.IMAGE,
            alt=image.alt,
            width=image.width,
            height=image.height,
        )
        for image in content.images
        if URL.is_valid(image.url)
    ]
