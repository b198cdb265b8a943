"""
Dispatchers for the background processing step.

Each submission returns a handle exposing ``result(timeout)``, so callers may
wait for the step to finish. The request path never does.
"""
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class ProcessingHandle(ABC):
    """Awaitable reference to one submitted processing step."""

    @abstractmethod
    def result(self, timeout: Optional[float] = None) -> Any:
        pass

    @abstractmethod
    def done(self) -> bool:
        pass


class FutureHandle(ProcessingHandle):
    def __init__(self, future: Future):
        self._future = future

    def result(self, timeout: Optional[float] = None) -> Any:
        return self._future.result(timeout=timeout)

    def done(self) -> bool:
        return self._future.done()


class CeleryHandle(ProcessingHandle):
    def __init__(self, async_result):
        self._async_result = async_result

    @property
    def task_id(self) -> str:
        return self._async_result.id

    def result(self, timeout: Optional[float] = None) -> Any:
        return self._async_result.get(timeout=timeout)

    def done(self) -> bool:
        return self._async_result.ready()


class ProcessingDispatcher(ABC):
    """Runs ``fn(document_id)`` off the request path."""

    @abstractmethod
    def submit(self, fn: Callable[[str], Any], document_id: str) -> ProcessingHandle:
        pass

    def shutdown(self, wait: bool = True) -> None:
        pass


class ThreadPoolDispatcher(ProcessingDispatcher):
    """Bounded in-process worker pool."""

    def __init__(self, max_workers: int = 8):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="docoh-processing",
        )

    def submit(self, fn: Callable[[str], Any], document_id: str) -> ProcessingHandle:
        future = self._executor.submit(fn, document_id)
        future.add_done_callback(lambda f: _log_unexpected_failure(f, document_id))
        logger.debug("processing_submitted", document_id=document_id, backend="thread")
        return FutureHandle(future)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class CeleryDispatcher(ProcessingDispatcher):
    """Sends the processing step to a Celery worker; ``fn`` runs worker-side."""

    def submit(self, fn: Callable[[str], Any], document_id: str) -> ProcessingHandle:
        from docoh.tasks.processing_tasks import process_document

        async_result = process_document.delay(document_id)
        logger.info(
            "processing_submitted",
            document_id=document_id,
            backend="celery",
            task_id=async_result.id,
        )
        return CeleryHandle(async_result)


def _log_unexpected_failure(future: Future, document_id: str) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error(
            "processing_task_crashed",
            document_id=document_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )


def build_dispatcher(backend: str, max_workers: int = 8) -> ProcessingDispatcher:
    if backend == "celery":
        return CeleryDispatcher()
    if backend == "thread":
        return ThreadPoolDispatcher(max_workers=max_workers)
    raise ValueError(f"Unknown processing backend: {backend}")
