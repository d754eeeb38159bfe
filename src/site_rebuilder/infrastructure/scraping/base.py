from typing import Protocol

from site_rebuilder.domain.site_discovery import ScrapedContent


class SiteScraper(Protocol):
    async def scrape_page(self, url: str) -> ScrapedContent:
        """페이지 하나를 열어 제목, 본문, 이미지, 링크를 추출합니다.

        Raises:
            ScrapingError: 페이지를 불러오지 못한 경우
        """
        ...

    async def scrape_site(self, base_url: str) -> list[ScrapedContent]:
        """홈페이지부터 시작해 사이트의 주요 페이지들을 스크랩합니다.

        홈페이지 이외의 페이지 실패는 건너뛰며, 홈페이지 실패는 ScrapingError로 전파됩니다.
        """
        ...
