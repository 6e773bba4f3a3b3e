"""
后台保存队列。

每次本地变更发布后，Coordinator 在这里登记一个 SaveTask，
真正的写入以 asyncio task 的形式在当前事件循环里异步执行。

SaveTask 状态机：
    queued → saving → saved
    queued → saving → error   （终态；只能手动 dismiss，不自动重试）

同一患者可以同时有多个 SaveTask 在途，彼此独立、无序。
任务一旦入队就不能取消。
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from django.conf import settings
from django.utils import timezone

from ..exceptions import BlockError, PreconditionError

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    QUEUED = 'queued'
    SAVING = 'saving'
    SAVED = 'saved'
    ERROR = 'error'


TRANSITIONS = {
    SaveStatus.QUEUED: {SaveStatus.SAVING},
    SaveStatus.SAVING: {SaveStatus.SAVED, SaveStatus.ERROR},
    SaveStatus.SAVED: set(),
    SaveStatus.ERROR: set(),
}

TaskListener = Callable[[str, SaveStatus, str | None], None]


@dataclass
class SaveTask:
    patient_id: str
    payload_summary: str
    revision: int = 0
    status: SaveStatus = SaveStatus.QUEUED
    error_message: str | None = None
    created_at: datetime = field(default_factory=timezone.now)
    id: str = field(default_factory=lambda: f'save-{uuid.uuid4().hex[:12]}')

    @property
    def finished(self) -> bool:
        return self.status in (SaveStatus.SAVED, SaveStatus.ERROR)


class SaveQueue:
    """
    SaveTask 注册表，按 id 索引。

    saved_ttl: saved 状态的任务在多少秒后自动移除；0 / None 表示不自动移除。
    error 状态的任务永远保留，直到用户 dismiss。
    """

    def __init__(self, saved_ttl: float | None = None):
        if saved_ttl is None:
            saved_ttl = getattr(settings, 'MEDCHART_SAVED_TASK_TTL', 30)
        self.saved_ttl = saved_ttl
        self._tasks: dict[str, SaveTask] = {}
        self._running: dict[str, asyncio.Task] = {}
        self._listeners: list[TaskListener] = []

    # ── 订阅 ───────────────────────────────────────────────────────────────

    def subscribe(self, listener: TaskListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, task: SaveTask) -> None:
        for listener in list(self._listeners):
            try:
                listener(task.id, task.status, task.error_message)
            except Exception:
                logger.exception("[save-queue] listener failed for task %s", task.id)

    def _transition(self, task: SaveTask, status: SaveStatus, error_message: str | None = None) -> None:
        if status not in TRANSITIONS[task.status]:
            raise PreconditionError(
                message=f"SaveTask {task.id} cannot go from {task.status.value} to {status.value}.",
                code='INVALID_TASK_TRANSITION',
            )
        task.status = status
        task.error_message = error_message
        self._notify(task)

    # ── 入队 / 执行 ────────────────────────────────────────────────────────

    def enqueue(
        self,
        patient_id: str,
        payload_summary: str,
        persist: Callable[[], Awaitable[None]],
        revision: int = 0,
    ) -> SaveTask:
        """
        登记一个 SaveTask 并在当前事件循环里启动写入。必须在事件循环内调用。
        立即返回（status=queued），不等待写入。
        """
        loop = asyncio.get_running_loop()
        task = SaveTask(patient_id=patient_id, payload_summary=payload_summary, revision=revision)
        self._tasks[task.id] = task
        self._notify(task)
        logger.info("[save-queue] %s queued patient_id=%s revision=%d: %s",
                    task.id, patient_id, revision, payload_summary)

        self._running[task.id] = loop.create_task(self._run(task, persist))
        return task

    async def _run(self, task: SaveTask, persist: Callable[[], Awaitable[None]]) -> None:
        self._transition(task, SaveStatus.SAVING)
        try:
            await persist()
        except asyncio.CancelledError:
            # 事件循环关闭时写入被取消，不能停在 saving
            logger.warning("[save-queue] %s cancelled patient_id=%s", task.id, task.patient_id)
            self._transition(task, SaveStatus.ERROR, 'Save cancelled before completion')
            raise
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning("[save-queue] %s failed patient_id=%s: %s", task.id, task.patient_id, message)
            self._transition(task, SaveStatus.ERROR, message)
        else:
            logger.info("[save-queue] %s saved patient_id=%s revision=%d",
                        task.id, task.patient_id, task.revision)
            self._transition(task, SaveStatus.SAVED)
            if self.saved_ttl:
                asyncio.get_running_loop().call_later(self.saved_ttl, self._expire, task.id)
        finally:
            self._running.pop(task.id, None)

    def _expire(self, task_id: str) -> None:
        task = self._tasks.get(task_id)
        if task is not None and task.status is SaveStatus.SAVED:
            del self._tasks[task_id]

    async def wait(self, task_id: str) -> SaveTask:
        """等待单个任务结束（saved 或 error）。"""
        task = self.get(task_id)
        running = self._running.get(task_id)
        if running is not None:
            await asyncio.shield(running)
        return task

    async def drain(self) -> None:
        """等待当前所有在途任务结束。"""
        while self._running:
            await asyncio.gather(*self._running.values())

    # ── 查询 / 清理 ────────────────────────────────────────────────────────

    def get(self, task_id: str) -> SaveTask:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise BlockError(
                message='Save task not found',
                code='SAVE_TASK_NOT_FOUND',
                detail={'task_id': task_id},
                http_status=404,
            )

    def tasks(self, patient_id: str | None = None) -> list[SaveTask]:
        return [
            task for task in self._tasks.values()
            if patient_id is None or task.patient_id == patient_id
        ]

    def pending(self, patient_id: str | None = None) -> list[SaveTask]:
        return [task for task in self.tasks(patient_id) if not task.finished]

    def dismiss(self, task_id: str) -> SaveTask:
        """用户手动移除一个已结束的任务。在途任务不能移除。"""
        task = self.get(task_id)
        if not task.finished:
            raise BlockError(
                message='Save task is still in flight',
                code='SAVE_TASK_IN_FLIGHT',
                detail={'task_id': task_id, 'status': task.status.value},
            )
        del self._tasks[task_id]
        return task

    def clear_finished(self) -> int:
        """移除所有 saved / error 任务，返回移除数量。"""
        finished = [task_id for task_id, task in self._tasks.items() if task.finished]
        for task_id in finished:
            del self._tasks[task_id]
        return len(finished)
