"""
Ownership of background asyncio tasks.

Every timer the cue engine creates (pending step, running transition,
completion deadline) is registered here under a (kind, key) pair so that it
can be superseded or cancelled as a unit.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Hashable, List, Optional, Tuple

logger = logging.getLogger("stagecue.tasks")

TaskKey = Tuple[str, Hashable]


async def supervise(coro: Coroutine, label: str):
    """
    Await a background coroutine, logging any failure.

    Cancellation propagates; every other exception is logged with its
    traceback and swallowed so that it never reaches the event loop's
    unhandled-exception hook.
    """
    try:
        return await coro
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Background task %s failed", label)
        return None


class TaskRegistry:
    """Cancellable tasks keyed by (kind, key); at most one task per key"""

    def __init__(self):
        self._tasks: Dict[TaskKey, asyncio.Task] = {}

    def spawn(self, kind: str, key: Hashable, coro: Coroutine) -> asyncio.Task:
        """
        Start a supervised task under (kind, key).

        Any task already registered under the same key is cancelled first.
        The task removes itself on completion, but only while it is still
        the registered task for its key.
        """
        task_key = (kind, key)
        self.cancel(kind, key)

        task = asyncio.create_task(supervise(coro, f"{kind}:{key}"), name=f"{kind}:{key}")
        self._tasks[task_key] = task
        task.add_done_callback(lambda t: self._discard(task_key, t))
        return task

    def _discard(self, task_key: TaskKey, task: asyncio.Task):
        if self._tasks.get(task_key) is task:
            del self._tasks[task_key]

    def get(self, kind: str, key: Hashable) -> Optional[asyncio.Task]:
        return self._tasks.get((kind, key))

    def cancel(self, kind: str, key: Hashable) -> bool:
        """Cancel and deregister one task; returns True if there was one"""
        task = self._tasks.pop((kind, key), None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_kind(self, kind: str) -> int:
        """Cancel every task of one kind"""
        keys = [task_key for task_key in self._tasks if task_key[0] == kind]
        for task_key in keys:
            self._tasks.pop(task_key).cancel()
        return len(keys)

    def cancel_all(self) -> int:
        """Cancel every task and empty the registry"""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        return len(tasks)

    def tasks(self, kind: Optional[str] = None) -> List[asyncio.Task]:
        if kind is None:
            return list(self._tasks.values())
        return [task for task_key, task in self._tasks.items() if task_key[0] == kind]

    def keys(self) -> List[TaskKey]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_key: Any) -> bool:
        return task_key in self._tasks
