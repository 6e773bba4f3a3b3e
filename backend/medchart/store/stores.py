"""
具体存储实现。

已注册存储：
  memory  → InMemoryDocumentStore  (进程内 dict，开发 / 测试用)
  django  → DjangoDocumentStore    (PatientDocument 表，JSONField)
  celery  → CeleryDocumentStore    (交给 Celery worker 写 PatientDocument，等待结果)
"""

import asyncio
import copy
import logging

from asgiref.sync import sync_to_async
from django.conf import settings

from ..exceptions import PersistenceError
from .base import BaseDocumentStore

logger = logging.getLogger(__name__)


# ── InMemoryDocumentStore ──────────────────────────────────────────────────
#
# delay / fail_with 用于模拟慢网络和写入失败。

class InMemoryDocumentStore(BaseDocumentStore):

    def __init__(self, delay: float = 0.0):
        self.documents: dict[str, dict] = {}
        self.delay = delay
        self.fail_with: str | None = None
        self.writes: list[tuple[str, dict]] = []

    async def load(self, patient_id: str) -> dict | None:
        document = self.documents.get(patient_id)
        return copy.deepcopy(document) if document is not None else None

    async def save(self, patient_id: str, document: dict) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with:
            raise PersistenceError(message=self.fail_with, code='STORE_UNAVAILABLE')
        snapshot = copy.deepcopy(document)
        self.documents[patient_id] = snapshot
        self.writes.append((patient_id, snapshot))


# ── DjangoDocumentStore ────────────────────────────────────────────────────
#
# ORM 是同步的，通过 sync_to_async 在线程里执行，事件循环不阻塞。

class DjangoDocumentStore(BaseDocumentStore):

    def read(self, patient_id: str) -> dict | None:
        from ..models import PatientDocument

        row = PatientDocument.objects.filter(patient_id=patient_id).first()
        return row.document if row is not None else None

    def write(self, patient_id: str, document: dict) -> None:
        from ..models import PatientDocument

        PatientDocument.objects.update_or_create(
            patient_id=patient_id,
            defaults={
                'display_name': document.get('name') or '',
                'revision': document.get('revision') or 0,
                'document': document,
            },
        )

    async def load(self, patient_id: str) -> dict | None:
        return await sync_to_async(self.read)(patient_id)

    async def save(self, patient_id: str, document: dict) -> None:
        try:
            await sync_to_async(self.write)(patient_id, document)
        except Exception as exc:
            raise PersistenceError(
                message=f"Failed to write patient document: {exc}",
                detail={'patient_id': patient_id},
            ) from exc


# ── CeleryDocumentStore ────────────────────────────────────────────────────
#
# 写入交给 worker 执行（persist_patient_document），这里只等结果。
# 超时：settings.MEDCHART_SAVE_TIMEOUT 秒。读取直接走 ORM。

class CeleryDocumentStore(DjangoDocumentStore):

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else getattr(settings, 'MEDCHART_SAVE_TIMEOUT', 30)

    def dispatch(self, patient_id: str, document: dict) -> None:
        from ..tasks import persist_patient_document

        result = persist_patient_document.delay(patient_id, document)
        logger.info("[store] persist dispatched patient_id=%s celery_id=%s", patient_id, result.id)
        result.get(timeout=self.timeout)

    async def save(self, patient_id: str, document: dict) -> None:
        try:
            await sync_to_async(self.dispatch, thread_sensitive=False)(patient_id, document)
        except Exception as exc:
            raise PersistenceError(
                message=f"Background persist failed: {exc}",
                detail={'patient_id': patient_id},
            ) from exc
