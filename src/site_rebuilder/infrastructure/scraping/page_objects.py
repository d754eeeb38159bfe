from typing import Any

from playwright.async_api import Page

from site_rebuilder.domain.site_discovery import ScrapedImage, ScrapedLink

# 브라우저 컨텍스트에서 실행되는 추출 스크립트
_IMAGES_SCRIPT = """
() => Array.from(document.querySelectorAll('img')).map((img) => ({
    url: img.src,
    alt: img.alt || null,
    width: img.naturalWidth || null,
    height: img.naturalHeight || null,
}))
"""

_LINKS_SCRIPT = """
() => Array.from(document.querySelectorAll('a[href]')).map((a) => ({
    url: a.href,
    text: (a.textContent || '').trim(),
}))
"""


class RestaurantSitePage:
    """레스토랑 사이트의 한 페이지에 대한 상호작용을 캡슐화합니다."""

    def __init__(self, page: Page):
        self.page: Page = page

    async def goto(self, url: str, timeout_ms: int) -> None:
        await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)

    async def title(self) -> str:
        return await self.page.title()

    async def meta_content(self, selector: str) -> str | None:
        """meta 태그의 content 속성을 읽습니다. 태그가 없으면 None."""
        locator = self.page.locator(selector).first
        if await locator.count() == 0:
            return None
        content = await locator.get_attribute("content")
        return content.strip() if content and content.strip() else None

    async def body_text(self) -> str:
        return await self.page.locator("body").inner_text()

    async def images(self) -> list[ScrapedImage]:
        raw: list[dict[str, Any]] = await self.page.evaluate(_IMAGES_SCRIPT)
        return [
            ScrapedImage(
                url=item["url"],
                alt=item.get("alt"),
                width=item.get("width"),
                height=item.get("height"),
            )
            for item in raw
            if item.get("url")
        ]

    async def links(self) -> list[ScrapedLink]:
        raw: list[dict[str, Any]] = await self.page.evaluate(_LINKS_SCRIPT)
        return [ScrapedLink(url=item["url"], text=item.get("text") or "") for item in raw]

    async def metadata(self) -> dict[str, Any]:
        keywords = await self.meta_content('meta[name="keywords"]')
        return {
            "og_title": await self.meta_content('meta[property="og:title"]'),
            "og_description": await self.meta_content('meta[property="og:description"]'),
            "og_image": await self.meta_content('meta[property="og:image"]'),
            "keywords": [k.strip() for k in (keywords or "").split(",") if k.strip()],
        }
