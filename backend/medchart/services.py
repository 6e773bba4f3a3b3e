"""
患者会话注册表。

每个打开的患者对应唯一一个 AggregateCoordinator（唯一可写副本）；
所有 panel / 请求共享它和同一个 SaveQueue。
Raises BlockError：View 层不需要处理，ExceptionHandlerMixin 统一兜底。
"""

import logging

from .chart.types import PatientAggregate
from .coordinator import AggregateCoordinator, SaveQueue, SaveTask
from .exceptions import BlockError
from .store import BaseDocumentStore, get_document_store

logger = logging.getLogger(__name__)


class PatientSessions:

    def __init__(self, store: BaseDocumentStore | None = None, save_queue: SaveQueue | None = None):
        self._store = store
        self._save_queue = save_queue
        self._coordinators: dict[str, AggregateCoordinator] = {}

    @property
    def store(self) -> BaseDocumentStore:
        if self._store is None:
            self._store = get_document_store()
        return self._store

    @property
    def save_queue(self) -> SaveQueue:
        if self._save_queue is None:
            self._save_queue = SaveQueue()
        return self._save_queue

    def reset(self, store: BaseDocumentStore | None = None, save_queue: SaveQueue | None = None) -> None:
        self._store = store
        self._save_queue = save_queue
        self._coordinators.clear()

    def _register(self, aggregate: PatientAggregate) -> AggregateCoordinator:
        # load() 期间可能有并发请求已经打开了同一个患者，先到先得
        return self._coordinators.setdefault(
            aggregate.patient_id,
            AggregateCoordinator(aggregate, self.store, self.save_queue),
        )

    async def open(self, patient_id: str) -> AggregateCoordinator:
        coordinator = self._coordinators.get(patient_id)
        if coordinator is not None:
            return coordinator

        document = await self.store.load(patient_id)
        if document is None:
            raise BlockError(
                message='Patient not found',
                code='PATIENT_NOT_FOUND',
                detail={'patient_id': patient_id},
                http_status=404,
            )
        logger.info("[sessions] opened patient_id=%s", patient_id)
        return self._register(PatientAggregate.from_document(document))

    def close(self, patient_id: str) -> bool:
        """
        关闭视图，释放 Coordinator。下次 open() 重新从存储读取。
        在途 SaveTask 不受影响，继续完成。返回是否真的关闭了一个打开的视图。
        """
        closed = self._coordinators.pop(patient_id, None) is not None
        if closed:
            logger.info("[sessions] closed patient_id=%s", patient_id)
        return closed

    async def admit(self, patient_id: str, name: str) -> tuple[AggregateCoordinator, SaveTask]:
        """
        新建空病历并立即保存。
        - patient_id 已存在 → 阻止 (409)
        """
        patient_id = (patient_id or '').strip()
        if not patient_id:
            raise BlockError(message='Patient id is required', code='PATIENT_ID_REQUIRED', http_status=400)

        exists = patient_id in self._coordinators or await self.store.load(patient_id) is not None
        # load() 期间可能已被并发请求入院
        if exists or patient_id in self._coordinators:
            raise BlockError(
                message=f"Patient {patient_id} is already admitted.",
                code='PATIENT_EXISTS',
                detail={'patient_id': patient_id},
            )

        coordinator = self._register(PatientAggregate(patient_id=patient_id, name=(name or '').strip()))
        task = coordinator.apply_and_persist(
            lambda aggregate: aggregate,
            summary=f'Admitted {coordinator.current.name or patient_id}',
        )
        return coordinator, task


sessions = PatientSessions()
