from collections.abc import Mapping
from typing import Any, Protocol

from site_rebuilder.domain.content_rebuild import PageTemplate
from site_rebuilder.domain.site_discovery import ContentBlock, PageType


class ElementGenerator(Protocol):
    async def generate(
        self,
        page_type: PageType,
        blocks: list[ContentBlock],
        template: PageTemplate,
        metadata: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        """페이지의 콘텐츠 블록을 Bricks 요소 배열(dict 형태)로 변환합니다.

        Args:
            page_type: 생성할 페이지의 타입
            blocks: 분석 단계에서 추출된 콘텐츠 블록
            template: 레이아웃/색상/타이포그래피 설정
            metadata: 사이트 메타데이터 (title, description 등)

        Raises:
            GenerationError: 요소 배열을 만들지 못한 경우
        """
        ...
