from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from site_rebuilder.domain.base import AggregateRoot, parse_datetime, transition
from site_rebuilder.domain.events import (
    DeploymentCompleted,
    DeploymentQueued,
    PagePublished,
)
from site_rebuilder.domain.exceptions import (
    BusinessRuleViolationError,
    InvalidOperationError,
    ValidationError,
)
from site_rebuilder.domain.site_discovery import PageType

ROLLBACK_MARKER = "Deployment rolled back"


class DeploymentStatus(Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


DEPLOYMENT_TRANSITIONS: dict[DeploymentStatus, frozenset[DeploymentStatus]] = {
    DeploymentStatus.QUEUED: frozenset(
        {DeploymentStatus.IN_PROGRESS, DeploymentStatus.FAILED}
    ),
    DeploymentStatus.IN_PROGRESS: frozenset(
        {DeploymentStatus.COMPLETED, DeploymentStatus.FAILED}
    ),
    DeploymentStatus.COMPLETED: frozenset({DeploymentStatus.ROLLED_BACK}),
    DeploymentStatus.FAILED: frozenset(
        {DeploymentStatus.FAILED, DeploymentStatus.ROLLED_BACK}
    ),
    DeploymentStatus.ROLLED_BACK: frozenset(),
}


@dataclass(frozen=True)
class DeployedPageInfo:
    """CMS에 게시된 페이지 하나의 결과"""

    page_type: str
    wordpress_page_id: int
    url: str
    edit_url: str

    def __post_init__(self):
        if isinstance(self.page_type, PageType):
            object.__setattr__(self, "page_type", self.page_type.value)
        if not self.page_type:
            raise ValidationError("Deployed page type cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_type": self.page_type,
            "wordpress_page_id": self.wordpress_page_id,
            "url": self.url,
            "edit_url": self.edit_url,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DeployedPageInfo:
        return cls(
            page_type=data["page_type"],
            wordpress_page_id=int(data["wordpress_page_id"]),
            url=data["url"],
            edit_url=data["edit_url"],
        )


@dataclass(eq=False)
class DeploymentJob(AggregateRoot):
    """재생성 결과를 외부 CMS에 게시하는 작업의 Aggregate Root.

    페이지별 성공/실패는 서로 독립적인 데이터로 기록됩니다.
    일부 페이지가 실패해도 하나 이상 게시되었다면 completed로 끝날 수 있으며,
    이 경우 error_log가 비어 있지 않습니다.
    """

    rebuild_id: uuid.UUID
    wordpress_site_id: uuid.UUID
    status: DeploymentStatus = DeploymentStatus.QUEUED
    deployed_pages: dict[str, DeployedPageInfo] = field(default_factory=dict)
    error_log: list[str] = field(default_factory=list)
    completed_at: datetime | None = None

    @staticmethod
    def create(
        rebuild_id: uuid.UUID,
        wordpress_site_id: uuid.UUID,
        deployment_id: uuid.UUID | None = None,
    ) -> DeploymentJob:
        """새 배포 작업을 만들고 DeploymentQueued 이벤트를 기록합니다."""
        if deployment_id is None:
            job = DeploymentJob(rebuild_id=rebuild_id, wordpress_site_id=wordpress_site_id)
        else:
            job = DeploymentJob(
                id=deployment_id,
                rebuild_id=rebuild_id,
                wordpress_site_id=wordpress_site_id,
            )
        job._record(
            DeploymentQueued(
                aggregate_id=job.id,
                rebuild_id=rebuild_id,
                wordpress_site_id=wordpress_site_id,
            )
        )
        return job

    @property
    def is_completed(self) -> bool:
        return self.status == DeploymentStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == DeploymentStatus.FAILED

    @property
    def has_errors(self) -> bool:
        return bool(self.error_log)

    @property
    def deployed_page_count(self) -> int:
        return len(self.deployed_pages)

    @property
    def duration(self) -> timedelta | None:
        """완료 전에는 None"""
        if self.completed_at is None:
            return None
        return self.completed_at - self.created_at

    def get_page_info(self, page_type: PageType | str) -> DeployedPageInfo | None:
        key = page_type.value if isinstance(page_type, PageType) else page_type
        return self.deployed_pages.get(key)

    def start_deployment(self) -> None:
        self.status = transition(
            self.status,
            DeploymentStatus.IN_PROGRESS,
            DEPLOYMENT_TRANSITIONS,
            "start deployment",
        )
        self.touch()

    def record_page_deployment(self, page_info: DeployedPageInfo) -> None:
        if self.status != DeploymentStatus.IN_PROGRESS:
            raise InvalidOperationError(
                "Cannot record page deployment. Job is not in progress."
            )
        self.deployed_pages[page_info.page_type] = page_info
        self._record(
            PagePublished(
                aggregate_id=self.id,
                page_type=page_info.page_type,
                wordpress_page_id=page_info.wordpress_page_id,
                page_url=page_info.url,
            )
        )

    def record_error(self, error: str) -> None:
        """타임스탬프가 붙은 오류를 기록합니다. 상태는 바뀌지 않습니다."""
        self.error_log.append(f"[{datetime.now().isoformat()}] {error}")
        self.touch()

    def complete_deployment(self) -> None:
        completed = transition(
            self.status,
            DeploymentStatus.COMPLETED,
            DEPLOYMENT_TRANSITIONS,
            "complete deployment",
        )
        if not self.deployed_pages:
            raise BusinessRuleViolationError(
                "deployment_requires_pages",
                "Cannot complete deployment with no deployed pages",
            )
        self.status = completed
        self.completed_at = datetime.now()
        self._record(
            DeploymentCompleted(
                aggregate_id=self.id,
                success=True,
                deployed_page_count=len(self.deployed_pages),
                error_count=len(self.error_log),
            )
        )
        self._increment_version()

    def fail_deployment(self, error_message: str) -> None:
        failed = transition(
            self.status, DeploymentStatus.FAILED, DEPLOYMENT_TRANSITIONS, "fail deployment"
        )
        self.record_error(error_message)
        self.status = failed
        self.completed_at = datetime.now()
        self._record(
            DeploymentCompleted(
                aggregate_id=self.id,
                success=False,
                deployed_page_count=len(self.deployed_pages),
                error_count=len(self.error_log),
            )
        )

    def rollback(self) -> None:
        self.status = transition(
            self.status,
            DeploymentStatus.ROLLED_BACK,
            DEPLOYMENT_TRANSITIONS,
            "rollback deployment",
        )
        self.record_error(ROLLBACK_MARKER)

    def to_dict(self) -> dict[str, Any]:
        duration = self.duration
        return {
            "id": str(self.id),
            "rebuild_id": str(self.rebuild_id),
            "wordpress_site_id": str(self.wordpress_site_id),
            "status": self.status.value,
            "deployed_pages": [info.to_dict() for info in self.deployed_pages.values()],
            "deployed_page_count": self.deployed_page_count,
            "error_log": list(self.error_log),
            "error_count": len(self.error_log),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": duration.total_seconds() if duration is not None else None,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def reconstitute(cls, snapshot: Mapping[str, Any]) -> DeploymentJob:
        pages = [DeployedPageInfo.from_dict(p) for p in snapshot.get("deployed_pages", [])]
        return cls(
            id=uuid.UUID(str(snapshot["id"])),
            rebuild_id=uuid.UUID(str(snapshot["rebuild_id"])),
            wordpress_site_id=uuid.UUID(str(snapshot["wordpress_site_id"])),
            status=DeploymentStatus(snapshot["status"]),
            deployed_pages={info.page_type: info for info in pages},
            error_log=list(snapshot.get("error_log") or []),
            completed_at=parse_datetime(snapshot.get("completed_at")),
            version=snapshot.get("version", 1),
            created_at=parse_datetime(snapshot["created_at"]),
            updated_at=parse_datetime(snapshot["updated_at"]),
        )
