"""
病历聚合的标准数据结构：core 唯一认识的格式。

所有 dataclass 都是 frozen：变更永远产生新对象，旧快照可以安全地交给
后台保存任务，不会被后续编辑改写。

文档格式（远程存储收到的 JSON）使用 camelCase 字段名，
to_document() / from_document() 负责双向转换。
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from django.utils.dateparse import parse_datetime

from ..exceptions import PreconditionError, ValidationError


class Route(str, Enum):
    IV = 'IV'
    PO = 'PO'
    IM = 'IM'
    SC = 'SC'
    NG = 'NG'
    INH = 'INH'
    TOP = 'TOP'
    PR = 'PR'
    ETT = 'ETT'


class Category(str, Enum):
    ANTIBIOTIC = 'Antibiotic'
    ANTIFUNGAL = 'Antifungal'
    INOTROPE = 'Inotrope'
    IV_FLUID = 'IV Fluid'
    TPN = 'TPN'
    NUTRITION = 'Nutrition'
    ANALGESIC = 'Analgesic'
    SEDATIVE = 'Sedative'
    ANTICONVULSANT = 'Anticonvulsant'
    RESPIRATORY = 'Respiratory'
    CARDIAC = 'Cardiac'
    GI = 'GI'
    VITAMIN = 'Vitamin'
    OTHER = 'Other'


def new_id() -> str:
    return uuid.uuid4().hex


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def from_iso(value: Any, field_name: str) -> datetime | None:
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    parsed = parse_datetime(str(value))
    if parsed is None:
        raise ValidationError(
            message=f"Invalid timestamp for {field_name}: {value!r}.",
            code='INVALID_TIMESTAMP',
            detail={'field': field_name, 'value': value},
        )
    return parsed


@dataclass(frozen=True)
class Actor:
    """操作人身份。core 只用 attribution，不关心内部结构。"""

    name: str = ''
    email: str = ''
    role: str = ''

    @property
    def attribution(self) -> str:
        return self.name or self.email or self.role or 'Unknown'


# ── MedicationRecord ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class MedicationRecord:
    """
    一条用药记录。

    不变量：stop_date 存在 ⇔ is_active 为 False。
    category 不存储，展示时由 classifier 现算。
    """

    name: str
    dose: str
    route: str = Route.IV.value
    frequency: str = ''
    is_active: bool = True
    start_date: datetime | None = None
    stop_date: datetime | None = None
    added_by: str = ''
    stopped_by: str = ''
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if self.is_active == (self.stop_date is not None):
            raise PreconditionError(
                message=(
                    f"Medication {self.name!r} has is_active={self.is_active} "
                    f"but stop_date={self.stop_date!r}."
                ),
                code='STOP_DATE_INVARIANT',
                detail={'medication_id': self.id},
            )

    def to_document(self) -> dict:
        doc = {
            'id': self.id,
            'name': self.name,
            'dose': self.dose,
            'route': self.route,
            'frequency': self.frequency,
            'isActive': self.is_active,
            'startDate': to_iso(self.start_date),
            'addedBy': self.added_by,
        }
        if not self.is_active:
            doc['stopDate'] = to_iso(self.stop_date)
            doc['stoppedBy'] = self.stopped_by
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> 'MedicationRecord':
        is_active = doc.get('isActive') is not False
        stop_date = None
        if not is_active:
            # 旧数据只有 stoppedAt
            stop_date = from_iso(doc.get('stopDate') or doc.get('stoppedAt'), 'stopDate')
            if stop_date is None:
                raise ValidationError(
                    message=f"Stopped medication {doc.get('name')!r} has no stop date.",
                    code='MALFORMED_DOCUMENT',
                    detail={'medication': doc},
                )
        return cls(
            id=doc.get('id') or new_id(),
            name=doc.get('name') or '',
            dose=doc.get('dose') or '',
            route=doc.get('route') or '',
            frequency=doc.get('frequency') or '',
            is_active=is_active,
            start_date=from_iso(doc.get('startDate') or doc.get('addedAt'), 'startDate'),
            stop_date=stop_date,
            added_by=doc.get('addedBy') or '',
            stopped_by=doc.get('stoppedBy') or '',
        )


# ── ProgressNote ───────────────────────────────────────────────────────────

_VITAL_FIELDS = ('temperature', 'hr', 'rr', 'bp', 'spo2', 'crt', 'weight')


@dataclass(frozen=True)
class VitalSigns:
    temperature: str = ''
    hr: str = ''
    rr: str = ''
    bp: str = ''
    spo2: str = ''
    crt: str = ''
    weight: str = ''
    extra: dict = field(default_factory=dict)

    def to_document(self) -> dict:
        doc = {name: getattr(self, name) for name in _VITAL_FIELDS if getattr(self, name)}
        doc.update(self.extra)
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> 'VitalSigns':
        known = {name: str(doc[name]) for name in _VITAL_FIELDS if doc.get(name) not in (None, '')}
        extra = {k: v for k, v in doc.items() if k not in _VITAL_FIELDS}
        return cls(extra=extra, **known)


@dataclass(frozen=True)
class ClinicalExamination:
    cns: str = ''
    cvs: str = ''
    chest: str = ''
    per_abdomen: str = ''
    other_findings: str = ''

    def to_document(self) -> dict:
        doc = {
            'cns': self.cns,
            'cvs': self.cvs,
            'chest': self.chest,
            'perAbdomen': self.per_abdomen,
            'otherFindings': self.other_findings,
        }
        return {k: v for k, v in doc.items() if v}

    @classmethod
    def from_document(cls, doc: dict) -> 'ClinicalExamination':
        return cls(
            cns=doc.get('cns') or '',
            cvs=doc.get('cvs') or '',
            chest=doc.get('chest') or '',
            per_abdomen=doc.get('perAbdomen') or '',
            other_findings=doc.get('otherFindings') or '',
        )


@dataclass(frozen=True)
class ProgressNote:
    """病程记录。只追加，不编辑、不删除。"""

    date: datetime
    note: str = ''
    vitals: VitalSigns | None = None
    examination: ClinicalExamination | None = None
    medications: tuple[MedicationRecord, ...] = ()
    added_by: str = ''
    id: str = field(default_factory=new_id)

    def to_document(self) -> dict:
        doc = {
            'id': self.id,
            'date': to_iso(self.date),
            'addedBy': self.added_by,
        }
        if self.note:
            doc['note'] = self.note
        if self.vitals is not None:
            doc['vitals'] = self.vitals.to_document()
        if self.examination is not None:
            doc['examination'] = self.examination.to_document()
        if self.medications:
            doc['medications'] = [m.to_document() for m in self.medications]
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> 'ProgressNote':
        date = from_iso(doc.get('date') or doc.get('timestamp'), 'date')
        if date is None:
            raise ValidationError(
                message='Progress note has no date.',
                code='MALFORMED_DOCUMENT',
                detail={'note': doc},
            )
        vitals = doc.get('vitals')
        examination = doc.get('examination')
        return cls(
            id=doc.get('id') or new_id(),
            date=date,
            note=doc.get('note') or '',
            vitals=VitalSigns.from_document(vitals) if vitals else None,
            examination=ClinicalExamination.from_document(examination) if examination else None,
            medications=tuple(MedicationRecord.from_document(m) for m in doc.get('medications') or []),
            added_by=doc.get('addedBy') or doc.get('authorName') or '',
        )


# ── PatientAggregate ───────────────────────────────────────────────────────

_AGGREGATE_KEYS = ('patientId', 'id', 'name', 'medications', 'progressNotes', 'revision')


@dataclass(frozen=True)
class PatientAggregate:
    """
    一个患者的完整内存记录，并发控制的最小单元。

    extra 保存 core 不建模的其余文档字段（人口学信息等），
    整文档覆盖写时原样带回，不会丢字段。
    """

    patient_id: str
    name: str = ''
    medications: tuple[MedicationRecord, ...] = ()
    progress_notes: tuple[ProgressNote, ...] = ()
    revision: int = 0
    extra: dict = field(default_factory=dict, repr=False)

    def to_document(self) -> dict:
        doc = dict(self.extra)
        doc.update({
            'patientId': self.patient_id,
            'name': self.name,
            'medications': [m.to_document() for m in self.medications],
            'progressNotes': [n.to_document() for n in self.progress_notes],
            'revision': self.revision,
        })
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> 'PatientAggregate':
        patient_id = doc.get('patientId') or doc.get('id')
        if not patient_id:
            raise ValidationError(
                message='Patient document has no patientId.',
                code='MALFORMED_DOCUMENT',
            )
        return cls(
            patient_id=str(patient_id),
            name=doc.get('name') or '',
            medications=tuple(MedicationRecord.from_document(m) for m in doc.get('medications') or []),
            progress_notes=tuple(ProgressNote.from_document(n) for n in doc.get('progressNotes') or []),
            revision=int(doc.get('revision') or 0),
            extra={k: v for k, v in doc.items() if k not in _AGGREGATE_KEYS},
        )
