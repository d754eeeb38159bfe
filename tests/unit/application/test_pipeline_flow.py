from __future__ import annotations

import uuid

from pytest_mock import MockerFixture

from site_rebuilder import bootstrap
from site_rebuilder.application.commands import (
    AnalyzeSiteCommand,
    DeployRebuildCommand,
    GenerateRebuildCommand,
    RollbackDeploymentCommand,
)
from site_rebuilder.application.queries import (
    GetAnalysisQuery,
    GetDeploymentQuery,
    GetRebuildQuery,
)
from site_rebuilder.domain.content_rebuild import BricksPageStructure, TemplateType
from site_rebuilder.domain.site_discovery import PageType, ScrapedContent, ScrapedImage
from site_rebuilder.infrastructure.config import Settings
from site_rebuilder.infrastructure.exceptions import PublishingError
from site_rebuilder.infrastructure.generation.template_generator import (
    TemplateElementGenerator,
)
from site_rebuilder.infrastructure.message_bus import InMemoryMessageBus
from site_rebuilder.infrastructure.publishing.base import PagePublisher, PublishedPage
from site_rebuilder.infrastructure.scraping.base import SiteScraper
from site_rebuilder.infrastructure.templates import (
    InMemoryPageTemplateRepository,
    template_id_for,
)
from site_rebuilder.infrastructure.uow import InMemoryUnitOfWork

SITE = [
    ScrapedContent(
        url="https://bistro.com",
        text="Welcome to Bistro, a family kitchen cooking fresh Italian food daily since 1982.",
        title="Bistro",
        description="Italian food",
        images=[ScrapedImage(url="https://bistro.com/hero.jpg", alt="Dining room")],
    ),
    ScrapedContent(
        url="https://bistro.com/menu",
        text="Margherita Pizza $12.99\nCaesar Salad $8.50\nTiramisu dessert $7.00",
        title="Menu",
    ),
    ScrapedContent(
        url="https://bistro.com/hours",
        text="Monday: 11am - 10pm\nTuesday: 11am - 10pm\nSunday: 12pm - 8pm",
        title="Hours",
    ),
]


def build_app(mocker: MockerFixture, failing: set[PageType]):
    scraper = mocker.AsyncMock(spec=SiteScraper)
    scraper.scrape_site.return_value = SITE  # pyright: ignore[reportAny]

    publisher = mocker.AsyncMock(spec=PagePublisher)

    def publish(wordpress_site_id: uuid.UUID, page: BricksPageStructure) -> PublishedPage:
        if page.page_type in failing:
            raise PublishingError(page.page_type.value, "timeout")
        return PublishedPage(
            wordpress_page_id=100,
            url=f"https://wp.test/{page.slug}",
            edit_url="https://wp.test/wp-admin/post.php?post=100&action=edit",
        )

    publisher.publish_page.side_effect = publish  # pyright: ignore[reportAny]

    bus = InMemoryMessageBus()
    uow = InMemoryUnitOfWork(bus)
    app = bootstrap.bootstrap(
        uow=uow,
        bus=bus,
        scraper=scraper,
        generator=TemplateElementGenerator(),
        templates=InMemoryPageTemplateRepository(),
        publisher=publisher,
        settings=Settings(preview_base_url="https://preview.test"),
    )
    return app, publisher


async def run_until_rebuilt(app: bootstrap.Application) -> tuple[uuid.UUID, uuid.UUID]:
    analysis_id = uuid.uuid4()
    rebuild_id = uuid.uuid4()
    await app.bus.handle(AnalyzeSiteCommand(analysis_id=analysis_id, url="https://bistro.com"))
    await app.bus.handle(
        GenerateRebuildCommand(
            rebuild_id=rebuild_id,
            site_analysis_id=analysis_id,
            template_id=template_id_for(TemplateType.RESTAURANT_MODERN),
        )
    )
    return analysis_id, rebuild_id


async def test_full_pipeline_with_partial_deployment(mocker: MockerFixture):
    app, publisher = build_app(mocker, failing={PageType.MENU})

    analysis_id, rebuild_id = await run_until_rebuilt(app)

    analysis = await app.analysis_query.handle(GetAnalysisQuery(analysis_id))
    assert analysis is not None
    assert analysis.status == "completed"
    assert [page.page_type for page in analysis.pages] == ["homepage", "menu", "hours"]

    # RebuildGenerated 이벤트가 미리보기 핸들러까지 흘러갔는지 확인
    rebuild = await app.rebuild_query.handle(GetRebuildQuery(rebuild_id))
    assert rebuild is not None
    assert rebuild.status == "preview_ready"
    assert rebuild.page_count == 3
    assert rebuild.preview_urls == {
        "homepage": f"https://preview.test/{rebuild_id}/home",
        "menu": f"https://preview.test/{rebuild_id}/menu",
        "hours": f"https://preview.test/{rebuild_id}/hours",
    }

    deployment_id = uuid.uuid4()
    await app.bus.handle(
        DeployRebuildCommand(
            deployment_id=deployment_id,
            rebuild_id=rebuild_id,
            wordpress_site_id=uuid.uuid4(),
        )
    )

    assert publisher.publish_page.await_count == 3  # pyright: ignore[reportAny]
    deployment = await app.deployment_query.handle(GetDeploymentQuery(deployment_id))
    assert deployment is not None
    assert deployment.status == "completed"
    assert deployment.outcome == "partial"
    assert sorted(page.page_type for page in deployment.deployed_pages) == [
        "homepage",
        "hours",
    ]
    assert len(deployment.error_log) == 1
    assert deployment.error_log[0].endswith("menu: timeout")


async def test_full_pipeline_with_clean_deployment_then_rollback(mocker: MockerFixture):
    app, _ = build_app(mocker, failing=set())
    _, rebuild_id = await run_until_rebuilt(app)
    deployment_id = uuid.uuid4()

    await app.bus.handle(
        DeployRebuildCommand(
            deployment_id=deployment_id,
            rebuild_id=rebuild_id,
            wordpress_site_id=uuid.uuid4(),
        )
    )
    deployment = await app.deployment_query.handle(GetDeploymentQuery(deployment_id))
    assert deployment is not None
    assert deployment.outcome == "succeeded"
    assert deployment.error_log == []

    await app.bus.handle(RollbackDeploymentCommand(deployment_id=deployment_id))

    deployment = await app.deployment_query.handle(GetDeploymentQuery(deployment_id))
    assert deployment is not None
    assert deployment.status == "rolled_back"
    assert deployment.outcome == "rolled_back"


async def test_empty_scrape_without_publisher_leaves_failed_analysis(
    mocker: MockerFixture,
):
    analysis_id = uuid.uuid4()
    scraper_failure = mocker.AsyncMock(spec=SiteScraper)
    scraper_failure.scrape_site.return_value = []  # pyright: ignore[reportAny]

    bus = InMemoryMessageBus()
    uow = InMemoryUnitOfWork(bus)
    failing_app = bootstrap.bootstrap(
        uow=uow,
        bus=bus,
        scraper=scraper_failure,
        generator=TemplateElementGenerator(),
        templates=InMemoryPageTemplateRepository(),
    )

    await failing_app.bus.handle(
        AnalyzeSiteCommand(analysis_id=analysis_id, url="https://bistro.com")
    )

    analysis = await failing_app.analysis_query.handle(GetAnalysisQuery(analysis_id))
    assert analysis is not None
    assert analysis.status == "failed"
    assert analysis.error_message == "No pages were scraped"
