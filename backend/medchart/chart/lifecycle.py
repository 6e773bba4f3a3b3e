"""
用药生命周期：add / stop / remove / days_running。

状态机只有两个状态：Active → Stopped，单向，UI 内不可逆。
所有操作都返回新的 tuple，不修改传入的序列；调用方（Coordinator）负责发布和持久化。

index 永远是「完整列表」里的位置，不是分组 / 过滤后视图里的位置。
Chart Presenter 为每个展示条目保留原始 index，panel 直接回传即可。
非法 index 属于程序错误，抛 PreconditionError，不做恢复。
"""

import math
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timedelta

from django.utils import timezone

from ..exceptions import PreconditionError, ValidationError
from .types import Actor, MedicationRecord, Route

ONE_DAY = timedelta(days=1)


def _check_index(medications: Sequence[MedicationRecord], index: int) -> None:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(medications):
        raise PreconditionError(
            message=f"Medication index {index!r} out of range (list has {len(medications)}).",
            code='INVALID_MEDICATION_INDEX',
            detail={'index': index, 'length': len(medications)},
        )


def normalize_route(route: str | None) -> str:
    """空 route 按 IV 处理；其余必须是 Route 枚举里的代码（大小写无关）。"""
    code = (route or Route.IV.value).strip().upper()
    try:
        return Route(code).value
    except ValueError:
        raise ValidationError(
            message=f"Unknown route {route!r}.",
            code='INVALID_ROUTE',
            detail={'route': route, 'allowed': [r.value for r in Route]},
        )


def add(
    medications: Sequence[MedicationRecord],
    name: str,
    dose: str,
    actor: Actor,
    route: str | None = None,
    frequency: str = '',
    now: datetime | None = None,
) -> tuple[MedicationRecord, ...]:
    """校验后追加一条 Active 记录，返回新列表（新记录在末尾）。"""
    errors = []
    if not (name or '').strip():
        errors.append({'field': 'name', 'message': 'Medication name is required.'})
    if not (dose or '').strip():
        errors.append({'field': 'dose', 'message': 'Dose is required.'})
    if errors:
        raise ValidationError(
            message='Medication validation failed.',
            code='INVALID_MEDICATION',
            detail={'errors': errors},
        )

    record = MedicationRecord(
        name=name.strip(),
        dose=dose.strip(),
        route=normalize_route(route),
        frequency=(frequency or '').strip(),
        is_active=True,
        start_date=now or timezone.now(),
        added_by=actor.attribution,
    )
    return (*medications, record)


def stop(
    medications: Sequence[MedicationRecord],
    index: int,
    actor: Actor,
    now: datetime | None = None,
) -> tuple[MedicationRecord, ...]:
    _check_index(medications, index)
    record = medications[index]
    if not record.is_active:
        raise PreconditionError(
            message=f"Medication {record.name!r} is already stopped.",
            code='MEDICATION_ALREADY_STOPPED',
            detail={'index': index, 'medication_id': record.id},
        )

    stopped = replace(
        record,
        is_active=False,
        stop_date=now or timezone.now(),
        stopped_by=actor.attribution,
    )
    return (*medications[:index], stopped, *medications[index + 1:])


def remove(medications: Sequence[MedicationRecord], index: int) -> tuple[MedicationRecord, ...]:
    """硬删除，不可逆。不检查状态。"""
    _check_index(medications, index)
    return (*medications[:index], *medications[index + 1:])


def index_of(medications: Sequence[MedicationRecord], medication_id: str) -> int:
    """按稳定 id 找到完整列表里的位置。"""
    for i, record in enumerate(medications):
        if record.id == medication_id:
            return i
    raise PreconditionError(
        message=f"No medication with id {medication_id!r}.",
        code='UNKNOWN_MEDICATION',
        detail={'medication_id': medication_id},
    )


def days_running(start: datetime, stop: datetime | None = None, now: datetime | None = None) -> int:
    """
    max(1, ceil((end - start) / 1 day))。

    end = stop（已停药，数值冻结），否则 now（每次渲染重新计算）。
    """
    end = stop or now or timezone.now()
    return max(1, math.ceil((end - start) / ONE_DAY))
