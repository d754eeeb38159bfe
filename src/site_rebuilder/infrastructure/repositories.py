import uuid
from collections.abc import Callable, Mapping
from typing import Any, override

from site_rebuilder.domain.content_rebuild import SiteRebuild
from site_rebuilder.domain.deployment import DeploymentJob
from site_rebuilder.domain.exceptions import ConcurrencyError
from site_rebuilder.domain.repositories import (
    A,
    AggregateRepository,
    DeploymentJobRepository,
    SiteAnalysisRepository,
    SiteRebuildRepository,
)
from site_rebuilder.domain.site_discovery import SiteAnalysis

Snapshot = dict[str, Any]


class _InMemoryRepository(AggregateRepository[A]):
    """스냅샷(dict)을 저장하는 인메모리 저장소.

    조회할 때마다 스냅샷에서 새 객체를 재구성하므로 커밋하지 않은 변경은 저장소에 남지 않습니다.
    """

    entity_name: str = "Aggregate"

    def __init__(
        self,
        store: dict[uuid.UUID, Snapshot],
        reconstitute: Callable[[Mapping[str, Any]], A],
    ) -> None:
        super().__init__()
        self._store = store
        self._reconstitute = reconstitute

    @override
    async def _save(self, aggregate: A, expected_version: int | None) -> None:
        current = self._store.get(aggregate.id)
        if expected_version is None and current is not None:
            raise ConcurrencyError(self.entity_name, str(aggregate.id))
        if expected_version is not None and (
            current is None or current["version"] != expected_version
        ):
            raise ConcurrencyError(self.entity_name, str(aggregate.id))
        self._store[aggregate.id] = aggregate.to_dict()

    @override
    async def _get(self, aggregate_id: uuid.UUID) -> A | None:
        snapshot = self._store.get(aggregate_id)
        if snapshot is None:
            return None
        return self._reconstitute(snapshot)


class InMemorySiteAnalysisRepository(
    _InMemoryRepository[SiteAnalysis], SiteAnalysisRepository
):
    entity_name = "SiteAnalysis"

    def __init__(self, store: dict[uuid.UUID, Snapshot]) -> None:
        super().__init__(store, SiteAnalysis.reconstitute)


class InMemorySiteRebuildRepository(
    _InMemoryRepository[SiteRebuild], SiteRebuildRepository
):
    entity_name = "SiteRebuild"

    def __init__(self, store: dict[uuid.UUID, Snapshot]) -> None:
        super().__init__(store, SiteRebuild.reconstitute)


class InMemoryDeploymentJobRepository(
    _InMemoryRepository[DeploymentJob], DeploymentJobRepository
):
    entity_name = "DeploymentJob"

    def __init__(self, store: dict[uuid.UUID, Snapshot]) -> None:
        super().__init__(store, DeploymentJob.reconstitute)
