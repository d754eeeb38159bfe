import uuid
from abc import ABC, abstractmethod
from typing import Generic, Set, TypeVar

from site_rebuilder.domain.base import AggregateRoot
from site_rebuilder.domain.content_rebuild import PageTemplate, SiteRebuild, TemplateType
from site_rebuilder.domain.deployment import DeploymentJob
from site_rebuilder.domain.site_discovery import SiteAnalysis

A = TypeVar("A", bound=AggregateRoot)


class AggregateRepository(ABC, Generic[A]):
    """조회하거나 추가한 Aggregate를 seen에 모아 두는 저장소의 기반 클래스.

    변경사항은 UnitOfWork.commit()에서 save_seen()을 통해 한 번에 저장됩니다.
    조회 시점의 버전을 기억해 두었다가, 저장할 때 그 버전이 그대로인지 확인합니다.
    """

    seen: Set[A]

    def __init__(self):
        self.seen = set()
        self._loaded_versions: dict[uuid.UUID, int] = {}

    async def add(self, aggregate: A) -> None:
        self.seen.add(aggregate)

    async def get(self, aggregate_id: uuid.UUID) -> A | None:
        aggregate = await self._get(aggregate_id)
        if aggregate:
            self._loaded_versions[aggregate.id] = aggregate.version
            self.seen.add(aggregate)
        return aggregate

    async def save_seen(self) -> None:
        for aggregate in self.seen:
            await self._save(aggregate, self._loaded_versions.get(aggregate.id))
            self._loaded_versions[aggregate.id] = aggregate.version

    def reset(self) -> None:
        self.seen.clear()
        self._loaded_versions.clear()

    @abstractmethod
    async def _save(self, aggregate: A, expected_version: int | None) -> None:
        """expected_version이 None이면 새 Aggregate로 저장합니다.

        Raises:
            ConcurrencyError: 저장된 버전이 expected_version과 다르거나, 새 Aggregate의 id가 이미 있는 경우
        """
        raise NotImplementedError

    @abstractmethod
    async def _get(self, aggregate_id: uuid.UUID) -> A | None:
        raise NotImplementedError


class SiteAnalysisRepository(AggregateRepository[SiteAnalysis]):
    pass


class SiteRebuildRepository(AggregateRepository[SiteRebuild]):
    pass


class DeploymentJobRepository(AggregateRepository[DeploymentJob]):
    pass


class PageTemplateRepository(ABC):
    """재생성에 사용할 템플릿 카탈로그"""

    @abstractmethod
    async def get(self, template_id: uuid.UUID) -> PageTemplate | None:
        raise NotImplementedError

    @abstractmethod
    async def get_by_type(self, template_type: TemplateType) -> PageTemplate | None:
        raise NotImplementedError

    @abstractmethod
    async def list_active(self) -> list[PageTemplate]:
        raise NotImplementedError
