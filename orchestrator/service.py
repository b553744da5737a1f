"""Refresh service: request ids, fire-and-forget runs and run history."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from threading import Lock
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from core import RefreshResponse, RefreshRun

if TYPE_CHECKING:
    from pipeline.refresh import RefreshPipeline


logger = logging.getLogger(__name__)


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class RefreshService:
    """
    Launches refresh runs as detached tasks.

    Single-flight is enforced by the pipeline's lock; a trigger during an
    active run still gets a request_id and its run ends as ``skipped``.
    """

    def __init__(self, pipeline: "RefreshPipeline", *, history_size: int = 50) -> None:
        self.pipeline = pipeline
        self.history_size = max(1, int(history_size))
        self._runs: Dict[str, RefreshRun] = {}
        self._order: List[str] = []
        self._tasks: Set[asyncio.Task] = set()
        self._lock = Lock()

    def _remember(self, run: RefreshRun) -> None:
        with self._lock:
            if run.request_id not in self._runs:
                self._order.append(run.request_id)
            self._runs[run.request_id] = run
            while len(self._order) > self.history_size:
                self._runs.pop(self._order.pop(0), None)

    async def run_now(self, request_id: Optional[str] = None) -> RefreshRun:
        """Run a refresh cycle and wait for it."""
        from pipeline.refresh import new_request_id

        request_id = request_id or new_request_id()
        try:
            run = await self.pipeline.run(request_id)
        except Exception as exc:
            # pipeline.run handles its own stages; this only covers lock/log wiring failures
            logger.exception(f"[{request_id}] refresh run crashed: {exc}")
            run = RefreshRun(request_id=request_id, state="failed", errors=[f"run: {exc}"])
        self._remember(run)
        return run

    def trigger(self) -> RefreshResponse:
        """Schedule a run on the current event loop and return immediately."""
        from pipeline.refresh import new_request_id

        request_id = new_request_id()
        started_at = _utc_iso()
        try:
            task = asyncio.get_running_loop().create_task(self.run_now(request_id))
        except RuntimeError as exc:
            logger.error(f"[{request_id}] could not start refresh: {exc}")
            return RefreshResponse(
                success=False,
                message="Content refresh could not be started",
                request_id=request_id,
                started_at=started_at,
                error=str(exc),
            )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"[{request_id}] content refresh started")
        return RefreshResponse(
            success=True,
            message="Content refresh started",
            request_id=request_id,
            started_at=started_at,
        )

    def get_run(self, request_id: str) -> Optional[RefreshRun]:
        with self._lock:
            run = self._runs.get(request_id)
            return run.model_copy(deep=True) if run else None

    def list_runs(self) -> List[RefreshRun]:
        with self._lock:
            return [self._runs[rid].model_copy(deep=True) for rid in reversed(self._order)]

    async def freshness(self) -> List[Dict[str, Any]]:
        return await self.pipeline.freshness()

    @property
    def active_tasks(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def wait_idle(self) -> None:
        """Await every detached run (used on shutdown and in tests)."""
        pending = [task for task in self._tasks if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        await self.wait_idle()
        await self.pipeline.aclose()


_DEFAULT_SERVICE: Optional[RefreshService] = None


def get_default_service() -> RefreshService:
    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is None:
        from pipeline.refresh import build_refresh_pipeline

        _DEFAULT_SERVICE = RefreshService(build_refresh_pipeline())
    return _DEFAULT_SERVICE
