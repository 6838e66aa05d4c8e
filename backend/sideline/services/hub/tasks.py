"""Cancellable background tasks for timers and side effects.

Outside of tests every task runs as a Socket.IO background task. With
``inline=True`` (TESTING) the task body runs immediately in the caller and
sleeps return at once, so tests see timer effects deterministically.
"""

import threading
from typing import Callable, List

from sideline import socketio


class Task:
    def __init__(self, name: str):
        self.name = name
        self._cancelled = threading.Event()
        self.done = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()


class TaskRunner:
    def __init__(self, inline: bool = False, logger=None):
        self.inline = inline
        self.logger = logger

    def spawn(self, name: str, fn: Callable[..., None], *args) -> Task:
        """Run ``fn(task, *args)``; the body must check ``task.cancelled`` before writing."""
        task = Task(name)

        def _run():
            try:
                if not task.cancelled:
                    fn(task, *args)
            except Exception:
                if self.logger is not None:
                    self.logger.exception(f"[task-error] task={name}")
            finally:
                task.done.set()

        if self.inline:
            _run()
        else:
            socketio.start_background_task(_run)
        return task

    def sleep(self, seconds: float) -> None:
        if self.inline or seconds <= 0:
            return
        socketio.sleep(seconds)


class TaskGroup:
    """Tracks in-flight tasks so they can all be cancelled together."""

    def __init__(self):
        self._tasks: List[Task] = []
        self._lock = threading.Lock()

    def add(self, task: Task) -> Task:
        with self._lock:
            self._tasks = [t for t in self._tasks if not t.done.is_set()]
            self._tasks.append(task)
        return task

    def cancel_all(self) -> None:
        with self._lock:
            tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
