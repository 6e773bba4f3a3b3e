"""
给药记录单（Medication Administration Record）的展示分组。

Active 记录按类别分组，类别按固定展示顺序排列（空类别省略）；
每个条目保留它在完整列表里的原始 index 和稳定 id，
分组视图上的 stop / remove 可以直接回传，不会停错药。

Stopped 记录不分组，按插入顺序单独列出，只有 show_stopped=True 时才返回。
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from django.utils import timezone

from .classifier import classify
from .lifecycle import days_running
from .scheduler import derive_slots
from .types import Category, MedicationRecord

DISPLAY_ORDER: tuple[Category, ...] = (
    Category.ANTIBIOTIC,
    Category.ANTIFUNGAL,
    Category.INOTROPE,
    Category.IV_FLUID,
    Category.TPN,
    Category.NUTRITION,
    Category.RESPIRATORY,
    Category.CARDIAC,
    Category.ANALGESIC,
    Category.SEDATIVE,
    Category.ANTICONVULSANT,
    Category.GI,
    Category.VITAMIN,
    Category.OTHER,
)


@dataclass(frozen=True)
class ChartEntry:
    index: int                    # 完整列表中的位置
    record: MedicationRecord
    category: Category
    slots: tuple[str, ...]
    days_running: int             # start_date 缺失的旧数据按 1 天

    @property
    def medication_id(self) -> str:
        return self.record.id


@dataclass(frozen=True)
class CategoryGroup:
    category: Category
    entries: tuple[ChartEntry, ...]


@dataclass(frozen=True)
class MedicationChart:
    groups: tuple[CategoryGroup, ...]
    stopped: tuple[ChartEntry, ...] = field(default=())
    active_count: int = 0
    stopped_count: int = 0
    show_stopped: bool = False

    def entries(self):
        for group in self.groups:
            yield from group.entries


def _entry(index: int, record: MedicationRecord, now: datetime) -> ChartEntry:
    return ChartEntry(
        index=index,
        record=record,
        category=classify(record.name),
        slots=tuple(derive_slots(record.frequency)),
        days_running=(
            days_running(record.start_date, record.stop_date, now=now)
            if record.start_date is not None else 1
        ),
    )


def build_chart(
    medications: Sequence[MedicationRecord],
    show_stopped: bool = False,
    now: datetime | None = None,
) -> MedicationChart:
    now = now or timezone.now()
    buckets: dict[Category, list[ChartEntry]] = {}
    stopped: list[ChartEntry] = []

    for index, record in enumerate(medications):
        if record.is_active:
            entry = _entry(index, record, now)
            buckets.setdefault(entry.category, []).append(entry)
        elif show_stopped:
            stopped.append(_entry(index, record, now))

    stopped_count = sum(1 for record in medications if not record.is_active)
    return MedicationChart(
        groups=tuple(
            CategoryGroup(category=category, entries=tuple(buckets[category]))
            for category in DISPLAY_ORDER
            if category in buckets
        ),
        stopped=tuple(stopped),
        active_count=len(medications) - stopped_count,
        stopped_count=stopped_count,
        show_stopped=show_stopped,
    )
