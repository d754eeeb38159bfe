import argparse
import asyncio
import json
import sys
import uuid
from dataclasses import asdict

from loguru import logger

from site_rebuilder.application.commands import AnalyzeSiteCommand, GenerateRebuildCommand
from site_rebuilder.application.queries import GetAnalysisQuery, GetRebuildQuery
from site_rebuilder.bootstrap import bootstrap
from site_rebuilder.domain.content_rebuild import TemplateType
from site_rebuilder.infrastructure.config import Settings, get_settings
from site_rebuilder.infrastructure.context import ApplicationContext
from site_rebuilder.infrastructure.generation.template_generator import (
    TemplateElementGenerator,
)
from site_rebuilder.infrastructure.logging_utils import configure_logging
from site_rebuilder.infrastructure.message_bus import InMemoryMessageBus
from site_rebuilder.infrastructure.persistence.database import (
    create_tables,
    get_engine,
    get_session_factory,
    reset_engine,
)
from site_rebuilder.infrastructure.scraping.service import PlaywrightSiteScraper
from site_rebuilder.infrastructure.templates import (
    InMemoryPageTemplateRepository,
    default_templates,
)
from site_rebuilder.infrastructure.uow import SqlAlchemyUnitOfWork


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


async def run_analyze(url: str, template_type: TemplateType, settings: Settings) -> int:
    """사이트를 분석하고 템플릿으로 재생성한 뒤 결과 DTO를 출력합니다."""
    try:
        return await _analyze_and_rebuild(url, template_type, settings)
    finally:
        reset_engine()


async def _analyze_and_rebuild(
    url: str, template_type: TemplateType, settings: Settings
) -> int:
    engine = get_engine(settings.database_url)
    create_tables(engine)

    bus = InMemoryMessageBus()
    uow = SqlAlchemyUnitOfWork(get_session_factory(engine), bus)
    templates = InMemoryPageTemplateRepository()
    template = await templates.get_by_type(template_type)
    if template is None:
        logger.error(f"Template {template_type.value} is not available.")
        return 1

    async with ApplicationContext(settings) as context:
        if context.browser is None:
            raise RuntimeError("Browser failed to launch")
        scraper = PlaywrightSiteScraper(
            context.browser,
            timeout_ms=settings.scrape_timeout_ms,
            max_link_depth=settings.max_link_depth,
        )
        app = bootstrap(
            uow=uow,
            bus=bus,
            scraper=scraper,
            generator=TemplateElementGenerator(),
            templates=templates,
            settings=settings,
        )
        analysis_id = uuid.uuid4()
        await bus.handle(AnalyzeSiteCommand(analysis_id=analysis_id, url=url))

    analysis = await app.analysis_query.handle(GetAnalysisQuery(analysis_id))
    output: dict = {"analysis": asdict(analysis) if analysis else None}
    if analysis is None or analysis.status != "completed":
        _print_json(output)
        return 1

    rebuild_id = uuid.uuid4()
    await bus.handle(
        GenerateRebuildCommand(
            rebuild_id=rebuild_id,
            site_analysis_id=analysis_id,
            template_id=template.id,
        )
    )
    rebuild = await app.rebuild_query.handle(GetRebuildQuery(rebuild_id))
    output["rebuild"] = asdict(rebuild) if rebuild else None
    _print_json(output)
    return 0 if rebuild and rebuild.status == "preview_ready" else 1


def handle_templates() -> int:
    for template in default_templates():
        print(
            f"{template.template_type.value:<20} {template.name:<20} "
            f"{template.id}  {template.description}"
        )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Restaurant site rebuilder")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # analyze
    analyze_parser = subparsers.add_parser(
        "analyze", help="Scrape, classify and rebuild a restaurant site"
    )
    analyze_parser.add_argument("url", help="Homepage URL of the existing site")
    analyze_parser.add_argument(
        "--template",
        default=TemplateType.RESTAURANT_CLASSIC.value,
        choices=[t.template_type.value for t in default_templates()],
        help="Template to rebuild with",
    )

    # templates
    subparsers.add_parser("templates", help="List available templates")

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)

    if args.command == "analyze":
        exit_code = asyncio.run(
            run_analyze(args.url, TemplateType(args.template), settings)
        )
    else:
        exit_code = handle_templates()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
