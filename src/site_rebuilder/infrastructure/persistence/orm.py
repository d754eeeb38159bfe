import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.types import String as SQLString
from sqlalchemy.types import TypeDecorator

from site_rebuilder.domain.content_rebuild import RebuildStatus
from site_rebuilder.domain.deployment import DeploymentStatus
from site_rebuilder.domain.site_discovery import AnalysisStatus

# --- Custom Types ---


class GUID(TypeDecorator):
    """SQLite를 위한 UUID 커스텀 타입. UUID를 문자열로 저장합니다."""

    impl = SQLString(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if isinstance(value, uuid.UUID):
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return uuid.UUID(value)


def _status_enum(enum_class) -> Enum:
    # DB에는 enum의 name이 아니라 value를 저장합니다.
    return Enum(
        enum_class,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=32,
    )


metadata = MetaData()

# Aggregate 하나당 테이블 하나. 소유한 하위 컬렉션은 JSON 컬럼에 스냅샷 형태로 저장합니다.
site_analyses_table = Table(
    "site_analyses",
    metadata,
    Column("id", GUID, primary_key=True, default=uuid.uuid4),
    Column("url", String(2048), nullable=False),
    Column("status", _status_enum(AnalysisStatus), nullable=False),
    Column("site_metadata", JSON, nullable=False, default=dict),
    Column("pages", JSON, nullable=False, default=list),
    Column("error_message", Text, nullable=True),
    Column("version", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

site_rebuilds_table = Table(
    "site_rebuilds",
    metadata,
    Column("id", GUID, primary_key=True, default=uuid.uuid4),
    Column("site_analysis_id", GUID, nullable=False, index=True),
    Column("template_id", GUID, nullable=False),
    Column("status", _status_enum(RebuildStatus), nullable=False),
    Column("pages", JSON, nullable=False, default=list),
    Column("preview_urls", JSON, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("version", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

deployment_jobs_table = Table(
    "deployment_jobs",
    metadata,
    Column("id", GUID, primary_key=True, default=uuid.uuid4),
    Column("rebuild_id", GUID, nullable=False, index=True),
    Column("wordpress_site_id", GUID, nullable=False),
    Column("status", _status_enum(DeploymentStatus), nullable=False),
    Column("deployed_pages", JSON, nullable=False, default=list),
    Column("error_log", JSON, nullable=False, default=list),
    Column("completed_at", DateTime, nullable=True),
    Column("version", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)
