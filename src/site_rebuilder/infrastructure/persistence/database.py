from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from site_rebuilder.infrastructure.persistence.orm import metadata

# 전역 변수로 엔진과 세션 팩토리를 관리합니다. DB 주소는 Settings.database_url에서 옵니다.
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine(database_url: str = "sqlite:///site_rebuilder.db", echo: bool = False):
    """SQLAlchemy 엔진을 생성하고 반환합니다."""
    global _engine
    if _engine is None:
        _engine = create_engine(database_url, echo=echo)
    return _engine


def get_session_factory(engine=None) -> sessionmaker[Session]:
    """세션 팩토리를 생성하고 반환합니다."""
    global _session_factory
    if _session_factory is None:
        if engine is None:
            engine = get_engine()
        _session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )
    return _session_factory


def reset_engine() -> None:
    """전역 엔진과 세션 팩토리를 폐기합니다."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def create_tables(engine=None):
    """메타데이터에 정의된 모든 테이블을 생성합니다."""
    if engine is None:
        engine = get_engine()
    metadata.create_all(engine)


def drop_tables(engine=None):
    """메타데이터에 정의된 모든 테이블을 삭제합니다."""
    if engine is None:
        engine = get_engine()
    metadata.drop_all(engine)
