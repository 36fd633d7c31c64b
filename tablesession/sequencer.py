"""
Fetch sequencing for a table session.

Fetches run as asyncio tasks on the session's event loop. Two rules keep the
cached page consistent without server-side cursors:

- Debounced fetches (free-text filter edits) wait for a quiet window; every
  new edit restarts the window and only the last one runs.
- Every fetch captures the generation current when it was scheduled. Its
  result is committed only if that generation is still current, so a slow
  fetch for an older filter/sort can never overwrite a newer one.

A fetch that is already running is never aborted; its result is ignored on
arrival.
"""

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger("tablesession")

DEFAULT_DEBOUNCE_SECONDS = 0.4

Work = Callable[[], Awaitable[Any]]
Commit = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class FetchKind(str, enum.Enum):
    """How a fetch is scheduled."""

    IMMEDIATE = "immediate"
    DEBOUNCED = "debounced"


class FetchSequencer:
    """Schedules fetches and gates their commits on the generation counter."""

    def __init__(
        self,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.debounce_seconds = debounce_seconds
        self.on_error = on_error
        self._generation = 0
        self._pending: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        return self._generation

    def advance(self) -> int:
        """
        Mark a new filter/sort intent.

        Results of fetches scheduled earlier go stale, and a debounced fetch
        still waiting for its window is dropped.
        """
        self._cancel_pending()
        self._generation += 1
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    @property
    def debounce_pending(self) -> bool:
        return self._pending is not None

    @property
    def busy(self) -> bool:
        return self.debounce_pending or any(not t.done() for t in self._tasks)

    def schedule(
        self,
        kind: FetchKind,
        work: Work,
        commit: Commit,
        on_error: Optional[ErrorCallback] = None,
    ) -> Optional[asyncio.Task]:
        """
        Schedule ``work`` and hand its result to ``commit`` if still current.

        ``on_error`` overrides the sequencer-wide error callback for this
        fetch. Returns the task for immediate fetches; debounced fetches have
        no task until their window closes.
        """
        generation = self._generation
        on_error = on_error or self.on_error

        if kind == FetchKind.IMMEDIATE:
            return self._start(generation, work, commit, on_error)

        self._cancel_pending()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(
            self.debounce_seconds, self._fire, generation, work, commit, on_error
        )
        logger.debug(
            f"Debounced fetch for generation {generation} "
            f"({self.debounce_seconds:.3f}s window)"
        )
        return None

    def _fire(
        self,
        generation: int,
        work: Work,
        commit: Commit,
        on_error: Optional[ErrorCallback],
    ) -> None:
        self._pending = None
        self._start(generation, work, commit, on_error)

    def _start(
        self,
        generation: int,
        work: Work,
        commit: Commit,
        on_error: Optional[ErrorCallback],
    ) -> asyncio.Task:
        task = asyncio.ensure_future(self._run(generation, work, commit, on_error))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        generation: int,
        work: Work,
        commit: Commit,
        on_error: Optional[ErrorCallback],
    ) -> None:
        try:
            result = await work()
        except Exception as e:
            if not self.is_current(generation):
                logger.debug(f"Dropping failure of stale generation {generation}: {e}")
                return
            logger.warning(f"Fetch for generation {generation} failed: {e}")
            if on_error is None:
                raise
            on_error(e)
            return

        if not self.is_current(generation):
            logger.debug(
                f"Dropping result of generation {generation} "
                f"(current is {self._generation})"
            )
            return
        commit(result)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    async def drain(self) -> None:
        """Wait until no fetch is pending or running."""
        while self.busy:
            running = [task for task in self._tasks if not task.done()]
            if running:
                await asyncio.gather(*running, return_exceptions=True)
            else:
                await asyncio.sleep(self.debounce_seconds / 4 or 0.001)

    def close(self) -> None:
        """Drop a pending debounced fetch and make running ones stale."""
        self.advance()
