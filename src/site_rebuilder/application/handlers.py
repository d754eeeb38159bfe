from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from loguru import logger

from site_rebuilder.application.commands import (
    AnalyzeSiteCommand,
    DeployRebuildCommand,
    GenerateRebuildCommand,
    RollbackDeploymentCommand,
)
from site_rebuilder.application.queries import (
    AnalysisDTO,
    DeployedPageDTO,
    DeploymentDTO,
    GetAnalysisQuery,
    GetDeploymentQuery,
    GetRebuildQuery,
    PageSummaryDTO,
    RebuildDTO,
    RebuildPageDTO,
)
from site_rebuilder.domain.classifier import classify_page, extract_assets, extract_blocks
from site_rebuilder.domain.content_rebuild import (
    BricksElement,
    BricksPageStructure,
    RebuildStatus,
    SiteRebuild,
)
from site_rebuilder.domain.deployment import (
    DeployedPageInfo,
    DeploymentJob,
    DeploymentStatus,
)
from site_rebuilder.domain.events import DeploymentQueued, RebuildGenerated
from site_rebuilder.domain.exceptions import (
    BusinessRuleViolationError,
    EntityNotFoundError,
    ValidationError,
)
from site_rebuilder.domain.site_discovery import (
    PageType,
    ScrapedContent,
    ScrapedPage,
    SiteAnalysis,
)
from site_rebuilder.infrastructure.exceptions import (
    GenerationError,
    PublishingError,
    ScrapingError,
)
from site_rebuilder.infrastructure.logging_utils import PerformanceTracker, log_step

if TYPE_CHECKING:
    from site_rebuilder.domain.repositories import PageTemplateRepository
    from site_rebuilder.domain.uow import UnitOfWork
    from site_rebuilder.infrastructure.generation.base import ElementGenerator
    from site_rebuilder.infrastructure.publishing.base import PagePublisher
    from site_rebuilder.infrastructure.scraping.base import SiteScraper


DEPLOYABLE_REBUILD_STATUSES = frozenset(
    {RebuildStatus.GENERATED, RebuildStatus.PREVIEW_READY}
)


class AnalyzeSiteCommandHandler:
    def __init__(self, uow: UnitOfWork, scraper: SiteScraper):
        self.uow: Final = uow
        self.scraper: Final = scraper

    async def handle(self, command: AnalyzeSiteCommand):
        with logger.contextualize(analysis_id=str(command.analysis_id)):
            logger.debug(f"Handling AnalyzeSiteCommand for {command.url}.")
            async with self.uow:
                analysis = SiteAnalysis.create(command.url, analysis_id=command.analysis_id)
                await self.uow.analyses.add(analysis)
                analysis.start_analysis()

                try:
                    contents = await self.scraper.scrape_site(analysis.url.value)
                except ScrapingError as e:
                    logger.warning(f"Scraping failed for {analysis.url}: {e.reason}")
                    analysis.fail_analysis(str(e))
                    await self.uow.commit()
                    return

                with log_step("Classifying pages", page_count=len(contents)):
                    for content in contents:
                        self._add_page(analysis, content)

                if not analysis.pages:
                    analysis.fail_analysis("No pages were scraped")
                else:
                    analysis.update_metadata(self._site_metadata(contents[0]))
                    analysis.complete_analysis()
                await self.uow.commit()

            logger.info(
                f"SiteAnalysis {analysis.id} finished with status {analysis.status.value} "
                f"({analysis.page_count} pages)."
            )

    @staticmethod
    def _add_page(analysis: SiteAnalysis, content: ScrapedContent) -> None:
        page = ScrapedPage.from_content(content)
        classification = classify_page(content)
        page.classify(classification.page_type, classification.confidence)
        page.add_blocks(extract_blocks(content, classification.page_type))
        page.add_assets(extract_assets(content))
        analysis.add_scraped_page(page)
        analysis.notify_content_extracted(page.id, page.block_count, page.asset_count)
        logger.debug(
            f"Classified {page.url} as {classification}",
            block_count=page.block_count,
            asset_count=page.asset_count,
        )

    @staticmethod
    def _site_metadata(homepage: ScrapedContent) -> dict[str, Any]:
        return {
            "title": homepage.title,
            "description": homepage.description,
            "keywords": homepage.metadata.get("keywords", []),
            "og_image": homepage.metadata.get("og_image"),
        }


class GenerateRebuildCommandHandler:
    def __init__(
        self,
        uow: UnitOfWork,
        templates: PageTemplateRepository,
        generator: ElementGenerator,
    ):
        self.uow: Final = uow
        self.templates: Final = templates
        self.generator: Final = generator

    async def handle(self, command: GenerateRebuildCommand):
        with logger.contextualize(rebuild_id=str(command.rebuild_id)):
            logger.debug(
                f"Handling GenerateRebuildCommand for analysis {command.site_analysis_id}."
            )
            async with self.uow:
                analysis = await self.uow.analyses.get(command.site_analysis_id)
                if analysis is None:
                    raise EntityNotFoundError("SiteAnalysis", command.site_analysis_id)
                if not analysis.is_completed:
                    raise BusinessRuleViolationError(
                        "rebuild_requires_completed_analysis",
                        f"Analysis status is {analysis.status.value}",
                    )
                template = await self.templates.get(command.template_id)
                if template is None:
                    raise EntityNotFoundError("PageTemplate", command.template_id)

                rebuild = SiteRebuild.create(
                    analysis.id, template.id, rebuild_id=command.rebuild_id
                )
                await self.uow.rebuilds.add(rebuild)

                tracker = PerformanceTracker(f"generate_rebuild_{rebuild.id}")
                tracker.start()
                try:
                    for page in analysis.pages:
                        # 분류되지 않은 페이지는 재구성 대상에서 제외합니다.
                        if page.page_type in (None, PageType.UNKNOWN):
                            continue
                        elements = await self.generator.generate(
                            page.page_type, page.blocks, template, analysis.metadata
                        )
                        rebuild.add_page(
                            BricksPageStructure.for_page_type(
                                page.page_type,
                                [BricksElement.from_dict(e) for e in elements],
                            )
                        )
                        tracker.checkpoint(page.page_type.value)
                    rebuild.complete_generation()
                except (GenerationError, ValidationError) as e:
                    logger.warning(f"Rebuild generation failed: {e}")
                    rebuild.fail(str(e))
                tracker.end()

                await self.uow.commit()

            logger.info(
                f"SiteRebuild {rebuild.id} finished with status {rebuild.status.value} "
                f"({rebuild.page_count} pages, {rebuild.total_element_count} elements)."
            )


class CreatePreviewHandler:
    def __init__(self, uow: UnitOfWork, preview_base_url: str):
        self.uow: Final = uow
        self.preview_base_url: Final = preview_base_url.rstrip("/")

    async def handle(self, event: RebuildGenerated):
        with logger.contextualize(rebuild_id=str(event.aggregate_id)):
            logger.debug(f"Handling RebuildGenerated event for {event.aggregate_id}.")
            async with self.uow:
                rebuild = await self.uow.rebuilds.get(event.aggregate_id)
                if not rebuild:
                    logger.warning(
                        f"Rebuild {event.aggregate_id} not found. Cannot create preview."
                    )
                    return

                rebuild.set_preview_urls(
                    {
                        page_type: f"{self.preview_base_url}/{rebuild.id}/{page.slug}"
                        for page_type, page in rebuild.pages.items()
                    }
                )
                await self.uow.commit()

            logger.info(f"Preview ready for {len(rebuild.pages)} pages.")


class DeployRebuildCommandHandler:
    def __init__(self, uow: UnitOfWork):
        self.uow: Final = uow

    async def handle(self, command: DeployRebuildCommand):
        with logger.contextualize(deployment_id=str(command.deployment_id)):
            logger.debug(f"Handling DeployRebuildCommand for rebuild {command.rebuild_id}.")
            async with self.uow:
                rebuild = await self.uow.rebuilds.get(command.rebuild_id)
                if rebuild is None:
                    raise EntityNotFoundError("SiteRebuild", command.rebuild_id)
                if rebuild.status not in DEPLOYABLE_REBUILD_STATUSES:
                    raise BusinessRuleViolationError(
                        "deployment_requires_generated_rebuild",
                        f"Rebuild status is {rebuild.status.value}",
                    )

                job = DeploymentJob.create(
                    rebuild.id,
                    command.wordpress_site_id,
                    deployment_id=command.deployment_id,
                )
                await self.uow.deployments.add(job)
                await self.uow.commit()

            logger.info(f"DeploymentJob {job.id} queued.")


class ExecuteDeploymentHandler:
    def __init__(self, uow: UnitOfWork, publisher: PagePublisher):
        self.uow: Final = uow
        self.publisher: Final = publisher

    async def handle(self, event: DeploymentQueued):
        with logger.contextualize(deployment_id=str(event.aggregate_id)):
            logger.debug(f"Handling DeploymentQueued event for {event.aggregate_id}.")
            async with self.uow:
                job = await self.uow.deployments.get(event.aggregate_id)
                if not job:
                    logger.warning(f"Job {event.aggregate_id} not found. Cannot deploy.")
                    return

                rebuild = await self.uow.rebuilds.get(job.rebuild_id)
                if not rebuild:
                    job.fail_deployment(f"Rebuild {job.rebuild_id} not found")
                    await self.uow.commit()
                    return

                job.start_deployment()
                with log_step("Publishing pages", page_count=rebuild.page_count):
                    for page in rebuild.pages.values():
                        await self._publish(job, page)

                if job.deployed_page_count:
                    job.complete_deployment()
                else:
                    job.fail_deployment("No pages were published")
                await self.uow.commit()

            logger.info(
                f"DeploymentJob {job.id} finished with status {job.status.value} "
                f"({job.deployed_page_count} deployed, {len(job.error_log)} errors)."
            )

    async def _publish(self, job: DeploymentJob, page: BricksPageStructure) -> None:
        """페이지 하나를 게시하고 결과를 기록합니다. 실패는 다른 페이지에 영향을 주지 않습니다."""
        try:
            published = await self.publisher.publish_page(job.wordpress_site_id, page)
        except PublishingError as e:
            logger.warning(f"Failed to publish {page.page_type.value} page: {e}")
            job.record_error(f"{page.page_type.value}: {e}")
            return

        job.record_page_deployment(
            DeployedPageInfo(
                page_type=page.page_type.value,
                wordpress_page_id=published.wordpress_page_id,
                url=published.url,
                edit_url=published.edit_url,
            )
        )


class RollbackDeploymentCommandHandler:
    def __init__(self, uow: UnitOfWork):
        self.uow: Final = uow

    async def handle(self, command: RollbackDeploymentCommand):
        with logger.contextualize(deployment_id=str(command.deployment_id)):
            async with self.uow:
                job = await self.uow.deployments.get(command.deployment_id)
                if job is None:
                    raise EntityNotFoundError("DeploymentJob", command.deployment_id)
                job.rollback()
                await self.uow.commit()
            logger.info(f"DeploymentJob {job.id} rolled back.")


# --- Queries ---


class GetAnalysisQueryHandler:
    def __init__(self, uow: UnitOfWork):
        self.uow: Final = uow

    async def handle(self, query: GetAnalysisQuery) -> AnalysisDTO | None:
        with logger.contextualize(analysis_id=str(query.analysis_id)):
            async with self.uow:
                analysis = await self.uow.analyses.get(query.analysis_id)
                if not analysis:
                    logger.warning(f"Analysis {query.analysis_id} not found in query handler.")
                    return None

                return AnalysisDTO(
                    analysis_id=analysis.id,
                    url=analysis.url.value,
                    status=analysis.status.value,
                    page_count=analysis.page_count,
                    total_blocks=analysis.total_block_count,
                    total_assets=analysis.total_asset_count,
                    pages=[
                        PageSummaryDTO(
                            url=page.url.value,
                            page_type=page.page_type.value if page.page_type else None,
                            confidence=page.classification.confidence
                            if page.classification
                            else None,
                            block_count=page.block_count,
                            asset_count=page.asset_count,
                        )
                        for page in analysis.pages
                    ],
                    metadata=dict(analysis.metadata),
                    error_message=analysis.error_message,
                )


class GetRebuildQueryHandler:
    def __init__(self, uow: UnitOfWork):
        self.uow: Final = uow

    async def handle(self, query: GetRebuildQuery) -> RebuildDTO | None:
        with logger.contextualize(rebuild_id=str(query.rebuild_id)):
            async with self.uow:
                rebuild = await self.uow.rebuilds.get(query.rebuild_id)
                if not rebuild:
                    logger.warning(f"Rebuild {query.rebuild_id} not found in query handler.")
                    return None

                return RebuildDTO(
                    rebuild_id=rebuild.id,
                    site_analysis_id=rebuild.site_analysis_id,
                    template_id=rebuild.template_id,
                    status=rebuild.status.value,
                    page_count=rebuild.page_count,
                    total_elements=rebuild.total_element_count,
                    pages=[
                        RebuildPageDTO(
                            page_type=page.page_type.value,
                            title=page.title,
                            slug=page.slug,
                            element_count=page.element_count,
                        )
                        for page in rebuild.pages.values()
                    ],
                    preview_urls=dict(rebuild.preview_urls)
                    if rebuild.preview_urls is not None
                    else None,
                    error_message=rebuild.error_message,
                )


def deployment_outcome(job: DeploymentJob) -> str:
    """'일부 페이지 실패'와 '작업 전체 실패'를 구분하는 결과 요약"""
    match job.status:
        case DeploymentStatus.QUEUED | DeploymentStatus.IN_PROGRESS:
            return "pending"
        case DeploymentStatus.COMPLETED:
            return "partial" if job.has_errors else "succeeded"
        case DeploymentStatus.FAILED:
            return "failed"
        case DeploymentStatus.ROLLED_BACK:
            return "rolled_back"


class GetDeploymentQueryHandler:
    def __init__(self, uow: UnitOfWork):
        self.uow: Final = uow

    async def handle(self, query: GetDeploymentQuery) -> DeploymentDTO | None:
        with logger.contextualize(deployment_id=str(query.deployment_id)):
            async with self.uow:
                job = await self.uow.deployments.get(query.deployment_id)
                if not job:
                    logger.warning(
                        f"Deployment {query.deployment_id} not found in query handler."
                    )
                    return None

                duration = job.duration
                return DeploymentDTO(
                    deployment_id=job.id,
                    rebuild_id=job.rebuild_id,
                    wordpress_site_id=job.wordpress_site_id,
                    status=job.status.value,
                    outcome=deployment_outcome(job),
                    deployed_pages=[
                        DeployedPageDTO(
                            page_type=info.page_type,
                            wordpress_page_id=info.wordpress_page_id,
                            url=info.url,
                            edit_url=info.edit_url,
                        )
                        for info in job.deployed_pages.values()
                    ],
                    error_log=list(job.error_log),
                    completed_at=job.completed_at,
                    duration_seconds=duration.total_seconds()
                    if duration is not None
                    else None,
                )
