import uuid
from dataclasses import dataclass


class Command:
    """모든 커맨드의 기본 클래스 (마커 역할)"""

    pass


@dataclass(frozen=True)
class AnalyzeSiteCommand(Command):
    """사이트 스크랩과 페이지 분류를 요청하는 커맨드"""

    analysis_id: uuid.UUID
    url: str


@dataclass(frozen=True)
class GenerateRebuildCommand(Command):
    """완료된 분석과 템플릿으로 페이지 재생성을 요청하는 커맨드"""

    rebuild_id: uuid.UUID
    site_analysis_id: uuid.UUID
    template_id: uuid.UUID


@dataclass(frozen=True)
class DeployRebuildCommand(Command):
    """재생성 결과의 CMS 배포를 요청하는 커맨드"""

    deployment_id: uuid.UUID
    rebuild_id: uuid.UUID
    wordpress_site_id: uuid.UUID


@dataclass(frozen=True)
class RollbackDeploymentCommand(Command):
    deployment_id: uuid.UUID
