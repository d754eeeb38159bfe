import uuid
from dataclasses import dataclass
from typing import Protocol

from site_rebuilder.domain.content_rebuild import BricksPageStructure


@dataclass(frozen=True)
class PublishedPage:
    """CMS가 돌려준 게시 결과"""

    wordpress_page_id: int
    url: str
    edit_url: str


class PagePublisher(Protocol):
    async def publish_page(
        self, wordpress_site_id: uuid.UUID, page: BricksPageStructure
    ) -> PublishedPage:
        """생성된 페이지 하나를 대상 사이트에 게시합니다.

        Raises:
            PublishingError: 이 페이지의 게시가 실패한 경우. 다른 페이지에는 영향이 없습니다.
        """
        ...
