from __future__ import annotations

from typing import Protocol

from site_rebuilder.domain.repositories import (
    DeploymentJobRepository,
    SiteAnalysisRepository,
    SiteRebuildRepository,
)


class UnitOfWork(Protocol):
    """Unit of Work 패턴의 추상 인터페이스"""

    analyses: SiteAnalysisRepository
    rebuilds: SiteRebuildRepository
    deployments: DeploymentJobRepository

    async def __aenter__(self) -> UnitOfWork:
        ...

    async def __aexit__(self, exc_type, exc_val, traceback):
        ...

    async def commit(self):
        """변경사항을 저장한 뒤, 저장이 성공했을 때만 도메인 이벤트를 발행합니다."""
        ...

    async def rollback(self):
        ...
