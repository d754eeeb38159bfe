class InfrastructureError(Exception):
    """인프라스트럭처 계층에서 발생하는 모든 예외의 기반 클래스입니다."""

    pass


class ScrapingError(InfrastructureError):
    """사이트 페이지를 가져오지 못했을 때 발생하는 예외입니다."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to scrape {url}: {reason}")


class GenerationError(InfrastructureError):
    """요소 생성 엔진이 페이지 요소를 만들지 못했을 때 발생하는 예외입니다."""

    pass


class PublishingError(InfrastructureError):
    """CMS에 페이지 하나를 게시하지 못했을 때 발생하는 예외입니다."""

    def __init__(self, page_type: str, reason: str):
        self.page_type = page_type
        self.reason = reason
        super().__init__(reason)
