from __future__ import annotations

import uuid
from abc import abstractmethod
from types import TracebackType
from typing import Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from site_rebuilder.domain.events import Event
from site_rebuilder.domain.message_bus import MessageBus
from site_rebuilder.domain.repositories import AggregateRepository
from site_rebuilder.domain.uow import UnitOfWork
from site_rebuilder.infrastructure.persistence.repositories import (
    SqlAlchemyDeploymentJobRepository,
    SqlAlchemySiteAnalysisRepository,
    SqlAlchemySiteRebuildRepository,
)
from site_rebuilder.infrastructure.repositories import (
    InMemoryDeploymentJobRepository,
    InMemorySiteAnalysisRepository,
    InMemorySiteRebuildRepository,
    Snapshot,
)


class _PublishingUnitOfWork(UnitOfWork):
    """저장 후에만 이벤트를 발행하는 공통 commit 로직"""

    bus: MessageBus

    def _repositories(self) -> list[AggregateRepository]:
        return [self.analyses, self.rebuilds, self.deployments]

    @abstractmethod
    async def _persist(self) -> None:
        raise NotImplementedError

    async def commit(self):
        for repository in self._repositories():
            await repository.save_seen()
        await self._persist()

        events: list[Event] = []
        for repository in self._repositories():
            for aggregate in repository.seen:
                events.extend(aggregate.pull_events())

        # 저장이 성공한 후에만 이벤트를 발행합니다.
        for event in events:
            await self.bus.handle(event)


class InMemoryUnitOfWork(_PublishingUnitOfWork):
    """스냅샷 저장소를 공유하는 인메모리 Unit of Work 구현체"""

    def __init__(self, bus: MessageBus):
        self.bus = bus
        self._analyses: dict[uuid.UUID, Snapshot] = {}
        self._rebuilds: dict[uuid.UUID, Snapshot] = {}
        self._deployments: dict[uuid.UUID, Snapshot] = {}

    async def __aenter__(self) -> InMemoryUnitOfWork:
        self.analyses = InMemorySiteAnalysisRepository(self._analyses)
        self.rebuilds = InMemorySiteRebuildRepository(self._rebuilds)
        self.deployments = InMemoryDeploymentJobRepository(self._deployments)
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_val: BaseException | None,
        traceback: TracebackType | None,
    ):
        if exc_type:
            await self.rollback()

    async def _persist(self) -> None:
        pass

    async def rollback(self):
        for repository in self._repositories():
            repository.reset()


class SqlAlchemyUnitOfWork(_PublishingUnitOfWork):
    """SQLAlchemy를 사용한 Unit of Work 구현체"""

    def __init__(self, session_factory: sessionmaker[Session], bus: MessageBus):
        self.session_factory = session_factory
        self.bus = bus

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        self.session: Session = self.session_factory()
        self.analyses = SqlAlchemySiteAnalysisRepository(self.session)
        self.rebuilds = SqlAlchemySiteRebuildRepository(self.session)
        self.deployments = SqlAlchemyDeploymentJobRepository(self.session)
        return self

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_val: BaseException | None,
        traceback: TracebackType | None,
    ):
        if exc_type:
            await self.rollback()
        self.session.close()

    async def _persist(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    async def rollback(self):
        self.session.rollback()
        for repository in self._repositories():
            repository.reset()
