import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TypeVar, override

from site_rebuilder.domain.events import Event
from site_rebuilder.domain.exceptions import InvalidOperationError

S = TypeVar("S", bound=Enum)


def parse_datetime(value: datetime | str | None) -> datetime | None:
    """스냅샷의 ISO 문자열(또는 datetime)을 datetime으로 복원합니다."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def transition(
    current: S, target: S, allowed: Mapping[S, frozenset[S]], action: str
) -> S:
    """전이 테이블에 따라 상태 전이가 가능한지 확인하고 새 상태를 반환합니다.

    Raises:
        InvalidOperationError: 현재 상태에서 target으로 갈 수 없는 경우
    """
    if target not in allowed.get(current, frozenset()):
        raise InvalidOperationError(
            f"Cannot {action}. Current status: {current.value}"
        )
    return target


@dataclass(eq=False, kw_only=True)
class Entity:
    """식별자로 동일성을 판단하는 Entity의 기반 클래스"""

    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        self.updated_at = datetime.now()

    @override
    def __eq__(self, other: object):
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.id == other.id

    @override
    def __hash__(self):
        return hash(self.id)


@dataclass(eq=False, kw_only=True)
class AggregateRoot(Entity):
    """버전과 도메인 이벤트 목록을 소유하는 Aggregate Root의 기반 클래스"""

    version: int = 1
    events: list[Event] = field(default_factory=list, repr=False)

    def _record(self, event: Event) -> None:
        self.events.append(event)
        self.touch()

    def _increment_version(self) -> None:
        self.version += 1
        self.touch()

    def has_events(self) -> bool:
        return bool(self.events)

    def pull_events(self) -> list[Event]:
        """수집된 이벤트를 반환하고 내부 리스트를 비웁니다."""
        pulled_events = self.events[:]
        self.events.clear()
        return pulled_events
