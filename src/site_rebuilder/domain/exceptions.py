class DomainError(Exception):
    """도메인 계층에서 발생하는 모든 예외의 기반 클래스입니다."""

    pass


class ValidationError(DomainError):
    """Value Object 또는 Entity가 잘못된 값으로 생성될 때 발생하는 예외입니다."""

    pass


class InvalidOperationError(DomainError):
    """현재 상태에서 허용되지 않는 커맨드가 호출되었을 때 발생하는 예외입니다."""

    pass


class BusinessRuleViolationError(ValidationError):
    """완료 시점의 구조적 규칙(예: 페이지 0개로 완료)을 위반했을 때 발생하는 예외입니다."""

    def __init__(self, rule: str, details: str | None = None):
        self.rule = rule
        self.details = details
        message = f"Business rule '{rule}' violated"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


class EntityNotFoundError(DomainError):
    """영속성 계층에서 애그리거트를 찾지 못했을 때 발생하는 예외입니다."""

    def __init__(self, entity_name: str, entity_id: object):
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(f"{entity_name} with ID '{entity_id}' not found")


class ConcurrencyError(DomainError):
    """저장 시점에 애그리거트 버전이 충돌했을 때 발생하는 예외입니다."""

    def __init__(self, entity_name: str, entity_id: object):
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(f"Concurrency conflict for {entity_name} with ID '{entity_id}'")
