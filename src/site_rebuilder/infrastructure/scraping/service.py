from pathlib import PurePosixPath
from typing import Final, override
from urllib.parse import urldefrag, urlsplit, urlunsplit

from loguru import logger
from playwright.async_api import Browser
from playwright.async_api import Error as PlaywrightError

from site_rebuilder.domain.site_discovery import URL, ScrapedContent, ScrapedLink
from site_rebuilder.infrastructure.exceptions import ScrapingError
from site_rebuilder.infrastructure.logging_utils import (
    PerformanceTracker,
    log_step,
    log_with_context,
)
from site_rebuilder.infrastructure.scraping.base import SiteScraper
from site_rebuilder.infrastructure.scraping.page_objects import RestaurantSitePage

COMMON_RESTAURANT_PATHS: Final = (
    "/menu",
    "/about",
    "/contact",
    "/gallery",
    "/hours",
    "/location",
)
SKIPPED_EXTENSIONS: Final = frozenset(
    {".pdf", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".zip", ".mp4"}
)


def _path_depth(url: URL) -> int:
    return len([segment for segment in url.path.split("/") if segment])


def select_candidate_urls(
    base_url: str, links: list[ScrapedLink], max_depth: int = 2
) -> list[str]:
    """홈페이지 다음에 스크랩할 URL 목록을 정합니다.

    흔한 레스토랑 경로를 먼저, 그 다음 홈페이지에서 발견한 같은 사이트 링크 중
    경로 깊이가 max_depth 이하인 것을 순서대로 반환합니다. 홈페이지와 중복은 제외됩니다.
    """
    base = URL(base_url)
    base_parts = urlsplit(base.value)
    base_path = base_parts.path.rstrip("/")
    candidates: dict[str, None] = {}

    for path in COMMON_RESTAURANT_PATHS:
        candidate = base_parts._replace(path=base_path + path, query="", fragment="")
        candidates[URL(urlunsplit(candidate)).value] = None

    for link in links:
        raw, _ = urldefrag(link.url)
        if not URL.is_valid(raw):
            continue
        url = URL(raw)
        if url.protocol not in ("http", "https") or url.domain != base.domain:
            continue
        if PurePosixPath(url.path).suffix.lower() in SKIPPED_EXTENSIONS:
            continue
        if _path_depth(url) > max_depth:
            continue
        candidates[url.value] = None

    candidates.pop(base.value, None)
    return list(candidates)


class PlaywrightSiteScraper(SiteScraper):
    def __init__(
        self, browser: Browser, timeout_ms: int = 30_000, max_link_depth: int = 2
    ) -> None:
        self.browser: Final = browser
        self.timeout_ms: Final = timeout_ms
        self.max_link_depth: Final = max_link_depth

    @override
    async def scrape_page(self, url: str) -> ScrapedContent:
        page = await self.browser.new_page()
        site_page = RestaurantSitePage(page)
        try:
            await site_page.goto(url, self.timeout_ms)
            content = ScrapedContent(
                url=url,
                title=await site_page.title() or None,
                description=await site_page.meta_content('meta[name="description"]'),
                text=await site_page.body_text(),
                images=await site_page.images(),
                links=await site_page.links(),
                metadata=await site_page.metadata(),
            )
        except PlaywrightError as e:
            raise ScrapingError(url, str(e)) from e
        finally:
            await page.close()

        logger.debug(
            "페이지 스크랩 완료",
            url=url,
            image_count=len(content.images),
            link_count=len(content.links),
            event_name="page_scraped",
        )
        return content

    @override
    @log_with_context(component="scraper")
    async def scrape_site(self, base_url: str) -> list[ScrapedContent]:
        tracker = PerformanceTracker(f"scrape_site_{base_url}")
        tracker.start()

        with log_step("Scraping restaurant site", url=base_url):
            homepage = await self.scrape_page(base_url)
            tracker.checkpoint("homepage_scraped")
            pages = [homepage]

            candidates = select_candidate_urls(
                base_url, homepage.links, self.max_link_depth
            )
            logger.info(
                f"Found {len(candidates)} candidate pages",
                url=base_url,
                event_name="candidates_selected",
            )

            for url in candidates:
                try:
                    pages.append(await self.scrape_page(url))
                except ScrapingError as e:
                    logger.warning(
                        f"Failed to scrape {url}, skipping",
                        url=url,
                        error=e.reason,
                        event_name="page_skipped",
                    )

        tracker.end()
        logger.info(f"Scraped {len(pages)} pages from {base_url}")
        return pages
