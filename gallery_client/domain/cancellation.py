"""
Cancellable request tasks, grouped by cancellation id.

Each id has at most one request in flight. Launching under an id or
cancelling it invalidates whatever ran under that id before, and a
completion from an invalidated request is dropped instead of being
delivered to the owner.
"""

import asyncio
from typing import Awaitable, Callable, Hashable, TypeVar, Union

from gallery_client.core.exceptions import FetchError, NetworkOrServerError
from gallery_client.core.logging import get_logger

logger = get_logger(__name__)

ResultT = TypeVar("ResultT")


class CancellableTasks:
    """Request tasks of one owner (a screen controller), keyed by cancellation id."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._tasks: dict[Hashable, asyncio.Task] = {}
        self._generations: dict[Hashable, int] = {}
        # Detached work and cancelled requests that have not finished yet
        self._background: set[asyncio.Task] = set()

    def launch(
        self,
        cancel_id: Hashable,
        request: Callable[[], Awaitable[ResultT]],
        on_complete: Callable[[Union[ResultT, FetchError]], None],
    ) -> None:
        """
        Run ``request`` as a task and hand its outcome to ``on_complete``.

        Exceptions become the outcome: a ``FetchError`` is passed as-is and
        anything else is wrapped in ``NetworkOrServerError``.
        """
        self.cancel(cancel_id)
        generation = self._generations[cancel_id]
        self._tasks[cancel_id] = asyncio.create_task(
            self._run(cancel_id, generation, request, on_complete),
            name=f"{self._name}-{cancel_id}",
        )

    def cancel(self, cancel_id: Hashable) -> bool:
        """Invalidate ``cancel_id``. Returns True if a request was in flight."""
        self._generations[cancel_id] = self._generations.get(cancel_id, 0) + 1
        task = self._tasks.pop(cancel_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        self._track(task)
        logger.debug("[%s] Cancelled %s", self._name, cancel_id)
        return True

    def cancel_all(self) -> None:
        for cancel_id in list(self._generations):
            self.cancel(cancel_id)

    def detach(self, operation: Awaitable[None]) -> None:
        """Fire-and-forget ``operation``; it is not affected by cancellation."""
        self._track(asyncio.ensure_future(operation))

    def _track(self, task: asyncio.Task) -> None:
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_idle(self) -> None:
        """Wait until no request, cancelled request or detached operation is in flight."""
        while True:
            pending = [
                task
                for task in (*self._tasks.values(), *self._background)
                if not task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run(
        self,
        cancel_id: Hashable,
        generation: int,
        request: Callable[[], Awaitable[ResultT]],
        on_complete: Callable[[Union[ResultT, FetchError]], None],
    ) -> None:
        try:
            result = await request()
        except FetchError as exc:
            result = exc
        except Exception as exc:
            logger.error(
                "[%s] Unexpected error during %s: %s",
                self._name, cancel_id, exc, exc_info=True,
            )
            result = NetworkOrServerError(str(exc))

        if self._generations.get(cancel_id) != generation:
            logger.debug("[%s] Discarding stale %s completion", self._name, cancel_id)
            return

        self._tasks.pop(cancel_id, None)
        on_complete(result)
