import uuid
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any, override

from sqlalchemy import Table, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

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
from site_rebuilder.infrastructure.persistence.orm import (
    deployment_jobs_table,
    site_analyses_table,
    site_rebuilds_table,
)


class _SqlAlchemyRepository(AggregateRepository[A]):
    """Aggregate 스냅샷을 테이블 한 행으로 저장하는 저장소의 기반 클래스.

    새 Aggregate는 INSERT, 조회했던 Aggregate는 조회 시점의 버전을 조건으로 UPDATE 합니다.
    """

    table: Table
    entity_name: str

    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    @abstractmethod
    def _to_row(self, aggregate: A) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def _from_row(self, row: Mapping[str, Any]) -> A:
        raise NotImplementedError

    @override
    async def _save(self, aggregate: A, expected_version: int | None) -> None:
        values = self._to_row(aggregate)
        if expected_version is None:
            try:
                self.session.execute(insert(self.table).values(**values))
            except IntegrityError as e:
                raise ConcurrencyError(self.entity_name, aggregate.id) from e
            return

        result = self.session.execute(
            update(self.table)
            .where(
                self.table.c.id == aggregate.id,
                self.table.c.version == expected_version,
            )
            .values(**values)
        )
        if result.rowcount == 0:
            raise ConcurrencyError(self.entity_name, aggregate.id)

    @override
    async def _get(self, aggregate_id: uuid.UUID) -> A | None:
        row = (
            self.session.execute(select(self.table).where(self.table.c.id == aggregate_id))
            .mappings()
            .first()
        )
        if row is None:
            return None
        return self._from_row(row)


class SqlAlchemySiteAnalysisRepository(
    _SqlAlchemyRepository[SiteAnalysis], SiteAnalysisRepository
):
    table = site_analyses_table
    entity_name = "SiteAnalysis"

    @override
    def _to_row(self, aggregate: SiteAnalysis) -> dict[str, Any]:
        snapshot = aggregate.to_dict()
        return {
            "id": aggregate.id,
            "url": snapshot["url"],
            "status": aggregate.status,
            "site_metadata": snapshot["metadata"],
            "pages": snapshot["pages"],
            "error_message": aggregate.error_message,
            "version": aggregate.version,
            "created_at": aggregate.created_at,
            "updated_at": aggregate.updated_at,
        }

    @override
    def _from_row(self, row: Mapping[str, Any]) -> SiteAnalysis:
        return SiteAnalysis.reconstitute(
            {
                "id": row["id"],
                "url": row["url"],
                "status": row["status"].value,
                "metadata": row["site_metadata"],
                "pages": row["pages"],
                "error_message": row["error_message"],
                "version": row["version"],
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
            }
        )


class SqlAlchemySiteRebuildRepository(
    _SqlAlchemyRepository[SiteRebuild], SiteRebuildRepository
):
    table = site_rebuilds_table
    entity_name = "SiteRebuild"

    @override
    def _to_row(self, aggregate: SiteRebuild) -> dict[str, Any]:
        snapshot = aggregate.to_dict()
        return {
            "id": aggregate.id,
            "site_analysis_id": aggregate.site_analysis_id,
            "template_id": aggregate.template_id,
            "status": aggregate.status,
            "pages": snapshot["pages"],
            "preview_urls": snapshot["preview_urls"],
            "error_message": aggregate.error_message,
            "version": aggregate.version,
            "created_at": aggregate.created_at,
            "updated_at": aggregate.updated_at,
        }

    @override
    def _from_row(self, row: Mapping[str, Any]) -> SiteRebuild:
        return SiteRebuild.reconstitute(
            {
                "id": row["id"],
                "site_analysis_id": row["site_analysis_id"],
                "template_id": row["template_id"],
                "status": row["status"].value,
                "pages": row["pages"],
                "preview_urls": row["preview_urls"],
                "error_message": row["error_message"],
                "version": row["version"],
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
            }
        )


class SqlAlchemyDeploymentJobRepository(
    _SqlAlchemyRepository[DeploymentJob], DeploymentJobRepository
):
    table = deployment_jobs_table
    entity_name = "DeploymentJob"

    @override
    def _to_row(self, aggregate: DeploymentJob) -> dict[str, Any]:
        snapshot = aggregate.to_dict()
        return {
            "id": aggregate.id,
            "rebuild_id": aggregate.rebuild_id,
            "wordpress_site_id": aggregate.wordpress_site_id,
            "status": aggregate.status,
            "deployed_pages": snapshot["deployed_pages"],
            "error_log": snapshot["error_log"],
            "completed_at": aggregate.completed_at,
            "version": aggregate.version,
            "created_at": aggregate.created_at,
            "updated_at": aggregate.updated_at,
        }

    @override
    def _from_row(self, row: Mapping[str, Any]) -> DeploymentJob:
        return DeploymentJob.reconstitute(
            {
                "id": row["id"],
                "rebuild_id": row["rebuild_id"],
                "wordpress_site_id": row["wordpress_site_id"],
                "status": row["status"].value,
                "deployed_pages": row["deployed_pages"],
                "error_log": row["error_log"],
                "completed_at": row["completed_at"],
                "version": row["version"],
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
            }
        )
