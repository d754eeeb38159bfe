import uuid
from datetime import timedelta

import pytest

from site_rebuilder.domain.deployment import (
    ROLLBACK_MARKER,
    DeployedPageInfo,
    DeploymentJob,
    DeploymentStatus,
)
from site_rebuilder.domain.events import (
    DeploymentCompleted,
    DeploymentQueued,
    PagePublished,
)
from site_rebuilder.domain.exceptions import (
    BusinessRuleViolationError,
    InvalidOperationError,
    ValidationError,
)
from site_rebuilder.domain.site_discovery import PageType


def homepage_info() -> DeployedPageInfo:
    return DeployedPageInfo(
        page_type=PageType.HOMEPAGE,
        wordpress_page_id=1,
        url="https://wp.test/home",
        edit_url="https://wp.test/wp-admin/post.php?post=1&action=edit",
    )


@pytest.fixture
def job() -> DeploymentJob:
    job = DeploymentJob.create(uuid.uuid4(), uuid.uuid4())
    job.pull_events()
    return job


def test_create_records_queued_event():
    rebuild_id = uuid.uuid4()
    site_id = uuid.uuid4()

    job = DeploymentJob.create(rebuild_id, site_id)

    assert job.status == DeploymentStatus.QUEUED
    (event,) = job.pull_events()
    assert isinstance(event, DeploymentQueued)
    assert event.aggregate_id == job.id
    assert event.rebuild_id == rebuild_id
    assert event.wordpress_site_id == site_id


def test_page_info_accepts_page_type_enum():
    assert homepage_info().page_type == "homepage"


def test_page_info_rejects_empty_page_type():
    with pytest.raises(ValidationError):
        DeployedPageInfo(page_type="", wordpress_page_id=1, url="u", edit_url="e")


def test_partial_success_completes_with_errors(job: DeploymentJob):
    job.start_deployment()
    job.record_page_deployment(homepage_info())
    job.record_error("menu: timeout")

    job.complete_deployment()

    assert job.status == DeploymentStatus.COMPLETED
    assert job.is_completed
    assert job.deployed_page_count == 1
    assert len(job.error_log) == 1
    assert job.error_log[0].endswith("menu: timeout")
    assert job.error_log[0].startswith("[")
    assert job.has_errors
    assert job.version == 2

    published, completed = job.pull_events()
    assert isinstance(published, PagePublished)
    assert published.page_type == "homepage"
    assert isinstance(completed, DeploymentCompleted)
    assert completed.success is True
    assert completed.error_count == 1


def test_record_page_requires_in_progress(job: DeploymentJob):
    with pytest.raises(InvalidOperationError):
        job.record_page_deployment(homepage_info())


def test_complete_without_pages_is_rejected(job: DeploymentJob):
    job.start_deployment()

    with pytest.raises(BusinessRuleViolationError):
        job.complete_deployment()

    assert job.status == DeploymentStatus.IN_PROGRESS
    assert job.completed_at is None


def test_complete_from_queued_raises(job: DeploymentJob):
    with pytest.raises(InvalidOperationError):
        job.complete_deployment()


def test_fail_after_complete_raises(job: DeploymentJob):
    job.start_deployment()
    job.record_page_deployment(homepage_info())
    job.complete_deployment()

    with pytest.raises(InvalidOperationError):
        job.fail_deployment("late failure")


def test_fail_deployment_logs_error_and_sets_completed_at(job: DeploymentJob):
    job.start_deployment()

    job.fail_deployment("Rebuild not found")

    assert job.is_failed
    assert job.completed_at is not None
    assert job.error_log[-1].endswith("Rebuild not found")
    assert job.version == 1
    (event,) = job.pull_events()
    assert isinstance(event, DeploymentCompleted)
    assert event.success is False


def test_queued_job_can_fail_directly(job: DeploymentJob):
    job.fail_deployment("cancelled")

    assert job.status == DeploymentStatus.FAILED


def test_rollback_from_completed_is_terminal(job: DeploymentJob):
    job.start_deployment()
    job.record_page_deployment(homepage_info())
    job.complete_deployment()

    job.rollback()

    assert job.status == DeploymentStatus.ROLLED_BACK
    assert job.error_log[-1].endswith(ROLLBACK_MARKER)
    with pytest.raises(InvalidOperationError):
        job.rollback()
    with pytest.raises(InvalidOperationError):
        job.fail_deployment("after rollback")


def test_rollback_from_failed(job: DeploymentJob):
    job.fail_deployment("boom")

    job.rollback()

    assert job.status == DeploymentStatus.ROLLED_BACK


def test_rollback_in_progress_raises(job: DeploymentJob):
    job.start_deployment()

    with pytest.raises(InvalidOperationError):
        job.rollback()


def test_duration_is_none_until_finished(job: DeploymentJob):
    assert job.duration is None

    job.start_deployment()
    job.record_page_deployment(homepage_info())
    job.complete_deployment()

    assert isinstance(job.duration, timedelta)
    assert job.duration >= timedelta(0)
    assert job.to_dict()["duration_seconds"] == job.duration.total_seconds()


def test_get_page_info_accepts_enum_or_string(job: DeploymentJob):
    job.start_deployment()
    job.record_page_deployment(homepage_info())

    assert job.get_page_info(PageType.HOMEPAGE) == homepage_info()
    assert job.get_page_info("homepage") == homepage_info()
    assert job.get_page_info(PageType.MENU) is None


def test_reconstitute_round_trip(job: DeploymentJob):
    job.start_deployment()
    job.record_page_deployment(homepage_info())
    job.record_error("menu: timeout")
    job.complete_deployment()

    restored = DeploymentJob.reconstitute(job.to_dict())

    assert restored == job
    assert restored.status == DeploymentStatus.COMPLETED
    assert restored.deployed_pages == job.deployed_pages
    assert restored.error_log == job.error_log
    assert restored.completed_at == job.completed_at
    assert restored.version == job.version
    assert not restored.has_events()
