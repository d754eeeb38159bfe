import uuid

import pytest
from pytest_mock import MockerFixture

from site_rebuilder.domain.deployment import DeploymentJob, DeploymentStatus
from site_rebuilder.domain.events import DeploymentQueued
from site_rebuilder.domain.exceptions import ConcurrencyError
from site_rebuilder.domain.site_discovery import AnalysisStatus, ScrapedPage, SiteAnalysis
from site_rebuilder.infrastructure.message_bus import InMemoryMessageBus
from site_rebuilder.infrastructure.uow import (
    InMemoryUnitOfWork,
    _PublishingUnitOfWork,  # pyright: ignore[reportPrivateUsage]
)


@pytest.fixture
def bus(mocker: MockerFixture) -> InMemoryMessageBus:
    bus = InMemoryMessageBus()
    mocker.spy(bus, "handle")
    return bus


async def test_commit_persists_and_publishes_events(bus: InMemoryMessageBus):
    uow = InMemoryUnitOfWork(bus)
    job = DeploymentJob.create(uuid.uuid4(), uuid.uuid4())

    async with uow:
        await uow.deployments.add(job)
        await uow.commit()

    async with uow:
        saved = await uow.deployments.get(job.id)

    assert saved is not None
    assert saved is not job
    assert saved.status == DeploymentStatus.QUEUED
    assert bus.handle.call_count == 1  # pyright: ignore[reportFunctionMemberAccess]
    assert isinstance(bus.handle.call_args.args[0], DeploymentQueued)  # pyright: ignore[reportFunctionMemberAccess]


async def test_uncommitted_changes_are_discarded(bus: InMemoryMessageBus):
    uow = InMemoryUnitOfWork(bus)
    analysis = SiteAnalysis.create("https://bistro.com")
    async with uow:
        await uow.analyses.add(analysis)
        await uow.commit()

    async with uow:
        loaded = await uow.analyses.get(analysis.id)
        assert loaded is not None
        loaded.start_analysis()

    async with uow:
        reloaded = await uow.analyses.get(analysis.id)
    assert reloaded is not None
    assert reloaded.status == AnalysisStatus.PENDING


async def test_exception_inside_block_rolls_back(bus: InMemoryMessageBus):
    uow = InMemoryUnitOfWork(bus)

    with pytest.raises(RuntimeError):
        async with uow:
            await uow.analyses.add(SiteAnalysis.create("https://bistro.com"))
            raise RuntimeError("boom")

    assert uow.analyses.seen == set()
    bus.handle.assert_not_called()  # pyright: ignore[reportFunctionMemberAccess]


async def test_stale_version_raises_concurrency_error(bus: InMemoryMessageBus):
    uow = InMemoryUnitOfWork(bus)
    analysis = SiteAnalysis.create("https://bistro.com")
    async with uow:
        await uow.analyses.add(analysis)
        await uow.commit()

    other = InMemoryUnitOfWork(bus)
    other._analyses = uow._analyses  # pyright: ignore[reportPrivateUsage]

    async with uow:
        first = await uow.analyses.get(analysis.id)
        async with other:
            second = await other.analyses.get(analysis.id)
            assert second is not None
            second.start_analysis()
            second.add_scraped_page(ScrapedPage(url="https://bistro.com"))
            second.complete_analysis()
            await other.commit()

        assert first is not None
        first.start_analysis()
        with pytest.raises(ConcurrencyError):
            await uow.commit()


async def test_adding_existing_id_raises_concurrency_error(bus: InMemoryMessageBus):
    uow = InMemoryUnitOfWork(bus)
    analysis_id = uuid.uuid4()
    async with uow:
        await uow.analyses.add(SiteAnalysis.create("https://bistro.com", analysis_id))
        await uow.commit()

    with pytest.raises(ConcurrencyError):
        async with uow:
            await uow.analyses.add(SiteAnalysis.create("https://bistro.com", analysis_id))
            await uow.commit()


def test_unit_of_work_without_persist_cannot_be_instantiated():
    class IncompleteUnitOfWork(_PublishingUnitOfWork):
        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc_val, traceback):
            pass

        async def rollback(self):
            pass

    with pytest.raises(TypeError):
        IncompleteUnitOfWork()
