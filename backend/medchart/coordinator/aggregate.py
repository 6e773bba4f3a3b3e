"""
AggregateCoordinator：当前打开的患者视图唯一可写的病历副本。

多个 panel（病程记录、用药）同时打开、各自异步保存时，防止丢更新：

    1. 同步读取权威引用（不是 panel 打开时捕获的旧快照）
    2. 用 mutation 计算新聚合
    3. 在任何异步操作之前，同步发布新聚合为权威引用
    4. 登记 SaveTask，异步整文档写入
    5. 成功 → saved；失败 → error，本地乐观状态保留，不回滚

第 2、3 步之间没有 await，事件循环不会切走；
所以第二个 panel 在第一个写入还在途时发起的变更，
读到的一定是已经包含第一个变更的聚合，发出去的文档包含全部本地变更。
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from django.utils import timezone

from ..chart import lifecycle
from ..chart.notes import extract_medications, merge_medications
from ..chart.types import Actor, MedicationRecord, PatientAggregate, ProgressNote
from ..exceptions import PreconditionError
from ..intake.types import MedicationInput, NoteInput
from ..store.base import BaseDocumentStore
from .save_queue import SaveQueue, SaveTask

logger = logging.getLogger(__name__)

Mutation = Callable[[PatientAggregate], PatientAggregate]
AggregateListener = Callable[[PatientAggregate], None]


class AggregateCoordinator:

    def __init__(
        self,
        aggregate: PatientAggregate,
        store: BaseDocumentStore,
        save_queue: SaveQueue | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self._aggregate = aggregate
        self._store = store
        self._queue = save_queue if save_queue is not None else SaveQueue()
        self._clock = clock
        self._listeners: list[AggregateListener] = []

    @property
    def current(self) -> PatientAggregate:
        return self._aggregate

    @property
    def patient_id(self) -> str:
        return self._aggregate.patient_id

    @property
    def save_queue(self) -> SaveQueue:
        return self._queue

    # ── 订阅 ───────────────────────────────────────────────────────────────

    def subscribe(self, listener: AggregateListener) -> Callable[[], None]:
        """权威引用每次前进都会通知 listener。返回取消订阅函数。"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, aggregate: PatientAggregate) -> None:
        self._aggregate = aggregate
        for listener in list(self._listeners):
            try:
                listener(aggregate)
            except Exception:
                logger.exception("[coordinator] listener failed patient_id=%s", aggregate.patient_id)

    # ── 核心：read → mutate → publish → persist ───────────────────────────

    def apply_and_persist(self, mutation: Mutation, summary: str = '') -> SaveTask:
        """
        对最新聚合应用 mutation，同步发布，然后入队异步保存。

        mutation 抛出的 ValidationError / PreconditionError 原样冒泡，此时状态未变。
        必须在事件循环内调用，否则在发布之前抛 RuntimeError，状态不变。
        """
        current = self._aggregate
        updated = mutation(current)
        if not isinstance(updated, PatientAggregate) or updated.patient_id != current.patient_id:
            raise PreconditionError(
                message='Mutation must return an aggregate for the same patient.',
                code='INVALID_MUTATION',
                detail={'patient_id': current.patient_id},
            )

        # 没有事件循环就无法登记 SaveTask，必须在发布之前失败
        asyncio.get_running_loop()
        updated = replace(updated, revision=current.revision + 1)
        self._publish(updated)

        # 文档在这里同步序列化，后续变更不会影响在途写入的内容
        document = updated.to_document()
        patient_id = updated.patient_id

        async def persist():
            await self._store.save(patient_id, document)

        return self._queue.enqueue(
            patient_id,
            summary or f'Update for {updated.name or patient_id}',
            persist,
            revision=updated.revision,
        )

    def resave(self) -> SaveTask:
        """用户手动重试：把当前权威聚合原样再写一次。"""
        return self.apply_and_persist(
            lambda aggregate: aggregate,
            summary=f'Re-save for {self._aggregate.name or self.patient_id}',
        )

    # ── Panel 命令 ─────────────────────────────────────────────────────────

    def add_medication(self, medication: MedicationInput, actor: Actor) -> SaveTask:
        now = self._clock()

        def mutation(aggregate: PatientAggregate) -> PatientAggregate:
            medications = lifecycle.add(
                aggregate.medications,
                name=medication.name,
                dose=medication.dose,
                route=medication.route,
                frequency=medication.frequency,
                actor=actor,
                now=now,
            )
            return replace(aggregate, medications=medications)

        return self.apply_and_persist(mutation, summary=f"Added {(medication.name or '').strip()}")

    def medication(self, medication_id: str) -> MedicationRecord:
        medications = self._aggregate.medications
        return medications[lifecycle.index_of(medications, medication_id)]

    def stop_medication(self, medication_id: str, actor: Actor) -> SaveTask:
        now = self._clock()
        name = self.medication(medication_id).name

        def mutation(aggregate: PatientAggregate) -> PatientAggregate:
            index = lifecycle.index_of(aggregate.medications, medication_id)
            return replace(aggregate, medications=lifecycle.stop(aggregate.medications, index, actor, now=now))

        return self.apply_and_persist(mutation, summary=f'Stopped {name}')

    def remove_medication(self, medication_id: str) -> SaveTask:
        name = self.medication(medication_id).name

        def mutation(aggregate: PatientAggregate) -> PatientAggregate:
            index = lifecycle.index_of(aggregate.medications, medication_id)
            return replace(aggregate, medications=lifecycle.remove(aggregate.medications, index))

        return self.apply_and_persist(mutation, summary=f'Removed {name}')

    def append_note(self, note: NoteInput, actor: Actor) -> SaveTask:
        """
        追加一条病程记录。

        note.extract 为 True 时，正文里的用药被提取出来，写进这条记录的用药快照，
        并去重合并进用药列表；两者在同一次 mutation、同一个 SaveTask 里完成。
        """
        now = self._clock()

        listed: tuple[MedicationRecord, ...] = ()
        for medication in note.medications:
            listed = lifecycle.add(
                listed,
                name=medication.name,
                dose=medication.dose,
                route=medication.route,
                frequency=medication.frequency,
                actor=actor,
                now=now,
            )
        extracted = extract_medications(note.note, actor, now=now) if note.extract else ()

        def mutation(aggregate: PatientAggregate) -> PatientAggregate:
            medications = aggregate.medications
            if extracted:
                medications, added = merge_medications(medications, extracted)
                logger.info("[coordinator] extracted %d medication(s), %d new, patient_id=%s",
                            len(extracted), len(added), aggregate.patient_id)
            progress_note = ProgressNote(
                date=now,
                note=note.note,
                vitals=note.vitals,
                examination=note.examination,
                medications=(*listed, *extracted),
                added_by=actor.attribution,
            )
            return replace(
                aggregate,
                medications=medications,
                progress_notes=(*aggregate.progress_notes, progress_note),
            )

        return self.apply_and_persist(
            mutation,
            summary=f'Progress note for {self._aggregate.name or self.patient_id}',
        )
