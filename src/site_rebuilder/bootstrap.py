from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from site_rebuilder.application import handlers
from site_rebuilder.application.commands import (
    AnalyzeSiteCommand,
    DeployRebuildCommand,
    GenerateRebuildCommand,
    RollbackDeploymentCommand,
)
from site_rebuilder.domain.events import DeploymentQueued, RebuildGenerated
from site_rebuilder.infrastructure.config import Settings

if TYPE_CHECKING:
    from site_rebuilder.domain.message_bus import MessageBus
    from site_rebuilder.domain.repositories import PageTemplateRepository
    from site_rebuilder.domain.uow import UnitOfWork
    from site_rebuilder.infrastructure.generation.base import ElementGenerator
    from site_rebuilder.infrastructure.publishing.base import PagePublisher
    from site_rebuilder.infrastructure.scraping.base import SiteScraper


class Application:
    """애플리케이션의 핵심 컴포넌트들을 관리하는 클래스"""

    def __init__(
        self,
        bus: MessageBus,
        uow: UnitOfWork,
        templates: PageTemplateRepository,
    ):
        self.bus = bus
        self.uow = uow
        self.templates = templates
        self.analysis_query = handlers.GetAnalysisQueryHandler(uow=uow)
        self.rebuild_query = handlers.GetRebuildQueryHandler(uow=uow)
        self.deployment_query = handlers.GetDeploymentQueryHandler(uow=uow)


def bootstrap(
    uow: UnitOfWork,
    bus: MessageBus,
    scraper: SiteScraper,
    generator: ElementGenerator,
    templates: PageTemplateRepository,
    publisher: PagePublisher | None = None,
    settings: Settings | None = None,
) -> Application:
    """핸들러를 메시지 버스에 등록하고 Application을 반환합니다.

    Args:
        uow: 모든 핸들러가 공유하는 Unit of Work (커밋 후 이벤트를 bus로 발행)
        bus: 커맨드와 이벤트를 전달할 메시지 버스
        scraper: 사이트 스크랩 포트
        generator: Bricks 요소 생성 포트
        templates: 템플릿 카탈로그
        publisher: CMS 게시 포트. 없으면 배포 커맨드를 등록하지 않습니다.
        settings: 미리보기 URL 등 설정. 없으면 기본값

    Returns:
        초기화된 Application 객체
    """
    logger.info("Bootstrapping application")
    settings = settings or Settings()

    # 1. 커맨드 핸들러 등록
    bus.register_command(
        AnalyzeSiteCommand,
        handlers.AnalyzeSiteCommandHandler(uow=uow, scraper=scraper),
    )
    bus.register_command(
        GenerateRebuildCommand,
        handlers.GenerateRebuildCommandHandler(
            uow=uow, templates=templates, generator=generator
        ),
    )
    logger.debug("Analysis and rebuild command handlers registered")

    # 2. 이벤트 핸들러 등록
    bus.subscribe_to_event(
        RebuildGenerated,
        handlers.CreatePreviewHandler(uow=uow, preview_base_url=settings.preview_base_url),
    )

    # 3. 배포 (게시 포트가 있을 때만)
    if publisher is not None:
        bus.register_command(
            DeployRebuildCommand, handlers.DeployRebuildCommandHandler(uow=uow)
        )
        bus.register_command(
            RollbackDeploymentCommand,
            handlers.RollbackDeploymentCommandHandler(uow=uow),
        )
        bus.subscribe_to_event(
            DeploymentQueued,
            handlers.ExecuteDeploymentHandler(uow=uow, publisher=publisher),
        )
        logger.debug("Deployment handlers registered")

    logger.info("Bootstrap complete")
    return Application(bus=bus, uow=uow, templates=templates)
