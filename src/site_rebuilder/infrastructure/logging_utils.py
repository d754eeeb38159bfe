"""로깅 설정과 트레이싱 유틸리티"""

import functools
import inspect
import sys
import time
from contextlib import contextmanager
from typing import Any, Callable

from loguru import logger

from site_rebuilder.infrastructure.config import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> | <yellow>{extra}</yellow>"
)


def configure_logging(settings: Settings) -> None:
    """기본 sink를 교체하고, log_file이 설정되어 있으면 JSON 파일 sink를 추가합니다."""
    logger.remove()
    if sys.stderr:
        logger.add(sys.stderr, level=settings.log_level, format=CONSOLE_FORMAT)
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention="7 days",
            encoding="utf-8",
            backtrace=True,
            diagnose=True,
            serialize=True,
        )


def _signature(args: tuple[Any, ...], kwargs: dict[str, Any], skip_self: bool) -> str:
    if skip_self:
        args = args[1:]
    parts = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
    return ", ".join(parts)


def log_function_call(func: Callable) -> Callable:
    """함수의 시작, 종료, 실행 시간을 로깅하는 데코레이터"""
    func_name = f"{func.__module__}.{func.__qualname__}"
    skip_self = next(iter(inspect.signature(func).parameters), None) == "self"

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        logger.debug(f"→ {func_name}({_signature(args, kwargs, skip_self)})")
        start_time = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(
                f"✗ {func_name} failed after {elapsed:.3f}s: {e.__class__.__name__}: {e}"
            )
            raise
        logger.debug(f"← {func_name} completed in {time.perf_counter() - start_time:.3f}s")
        return result

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        logger.debug(f"→ {func_name}({_signature(args, kwargs, skip_self)})")
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(
                f"✗ {func_name} failed after {elapsed:.3f}s: {e.__class__.__name__}: {e}"
            )
            raise
        logger.debug(f"← {func_name} completed in {time.perf_counter() - start_time:.3f}s")
        return result

    if inspect.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper


@contextmanager
def log_step(step_name: str, **extra_context):
    """단계별 작업을 로깅하는 컨텍스트 매니저

    Usage:
        with log_step("Scraping site", url="https://example.com"):
            # do work
            pass
    """
    logger.info(f"▶ {step_name}", **extra_context)
    start_time = time.perf_counter()

    try:
        yield
    except Exception as e:
        elapsed = time.perf_counter() - start_time
        logger.error(
            f"✗ {step_name} failed after {elapsed:.3f}s: {e.__class__.__name__}: {e}",
            duration=elapsed,
            error_type=e.__class__.__name__,
            **extra_context,
        )
        raise
    elapsed = time.perf_counter() - start_time
    logger.info(
        f"✓ {step_name} completed in {elapsed:.3f}s", duration=elapsed, **extra_context
    )


class PerformanceTracker:
    """구간별 소요 시간을 기록하는 클래스"""

    def __init__(self, name: str):
        self.name = name
        self.start_time: float | None = None
        self.metrics: dict[str, float] = {}

    def start(self):
        self.start_time = time.perf_counter()
        logger.debug(f"Performance tracking started: {self.name}")

    def checkpoint(self, checkpoint_name: str):
        if self.start_time is None:
            logger.warning(f"PerformanceTracker.start() not called for {self.name}")
            return

        elapsed = time.perf_counter() - self.start_time
        self.metrics[checkpoint_name] = elapsed
        logger.debug(
            f"Checkpoint '{checkpoint_name}' reached",
            tracker=self.name,
            elapsed=f"{elapsed:.3f}s",
        )

    def end(self) -> dict[str, float]:
        """추적 종료 및 메트릭 반환"""
        if self.start_time is None:
            logger.warning(f"PerformanceTracker.start() not called for {self.name}")
            return {}

        self.metrics["total"] = time.perf_counter() - self.start_time
        logger.info(
            f"Performance metrics for {self.name}",
            **{k: f"{v:.3f}s" for k, v in self.metrics.items()},
        )
        return self.metrics


def log_with_context(**context_fields):
    """컨텍스트 정보를 추가하여 로깅하는 데코레이터

    Usage:
        @log_with_context(component="scraper")
        async def scrape_site(...):
            pass
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            with logger.contextualize(**context_fields):
                return await func(*args, **kwargs)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with logger.contextualize(**context_fields):
                return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
