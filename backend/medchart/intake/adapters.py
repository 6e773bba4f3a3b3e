"""
具体 Adapter 实现。

已注册输入：
  medication  → MedicationIntakeAdapter   (JSON: name / dose / route / frequency)
  note        → ProgressNoteIntakeAdapter (JSON: note / vitals / examination / medications / extract)
  admission   → AdmissionIntakeAdapter    (JSON: patient_id / name)
"""

from ..chart.types import ClinicalExamination, VitalSigns
from ..exceptions import ValidationError
from .base import BaseIntakeAdapter
from .types import AdmissionInput, MedicationInput, NoteInput


def _text(value) -> str:
    return str(value).strip() if value is not None else ''


def _medication_from(raw: dict) -> MedicationInput:
    return MedicationInput(
        name=_text(raw.get('name')),
        dose=_text(raw.get('dose')),
        route=_text(raw.get('route')) or 'IV',
        frequency=_text(raw.get('frequency')) or 'q12h',
        raw_payload=raw,
    )


# ── MedicationIntakeAdapter ────────────────────────────────────────────────
#
# 外部格式示例（JSON）:
# { "name": "Ampicillin", "dose": "50mg/kg", "route": "IV", "frequency": "q12h" }

class MedicationIntakeAdapter(BaseIntakeAdapter):
    kind = 'medication'

    def transform(self) -> MedicationInput:
        return _medication_from(self._parsed)

    def validate(self, result: MedicationInput) -> None:
        errors = self._medication_errors(result)
        if errors:
            raise ValidationError(
                message='Request validation failed.',
                code='VALIDATION_ERROR',
                detail={'errors': errors},
            )


# ── ProgressNoteIntakeAdapter ──────────────────────────────────────────────
#
# 外部格式示例（JSON）:
# {
#   "note":        "Baby active, feeding well.\n\nMedications:\n- Inj Ampicillin 50mg/kg IV q12h",
#   "vitals":      { "hr": "142", "rr": "48", "spo2": "96", "temperature": "36.8" },
#   "examination": { "cns": "Active", "perAbdomen": "Soft" },
#   "medications": [ { "name": "Caffeine", "dose": "5mg/kg", "route": "PO", "frequency": "OD" } ],
#   "extract":     true
# }

class ProgressNoteIntakeAdapter(BaseIntakeAdapter):
    kind = 'note'

    def transform(self) -> NoteInput:
        raw = self._parsed
        vitals = raw.get('vitals') or None
        examination = raw.get('examination') or None
        medications = raw.get('medications') or []
        if not isinstance(medications, list):
            medications = []

        return NoteInput(
            note=_text(raw.get('note')),
            vitals=VitalSigns.from_document(vitals) if isinstance(vitals, dict) else None,
            examination=ClinicalExamination.from_document(examination) if isinstance(examination, dict) else None,
            medications=[_medication_from(m) for m in medications if isinstance(m, dict)],
            extract=bool(raw.get('extract', False)),
            raw_payload=raw,
        )

    def validate(self, result: NoteInput) -> None:
        errors = []
        if not (result.note or result.vitals or result.examination or result.medications):
            errors.append({'field': 'note', 'message': 'Progress note is empty.'})
        for i, medication in enumerate(result.medications):
            errors.extend(self._medication_errors(medication, prefix=f'medications[{i}].'))
        if errors:
            raise ValidationError(
                message='Request validation failed.',
                code='VALIDATION_ERROR',
                detail={'errors': errors},
            )


# ── AdmissionIntakeAdapter ─────────────────────────────────────────────────
#
# 外部格式示例（JSON）:
# { "patient_id": "NICU-2024-0042", "name": "Baby of Anita" }

class AdmissionIntakeAdapter(BaseIntakeAdapter):
    kind = 'admission'

    def transform(self) -> AdmissionInput:
        raw = self._parsed
        return AdmissionInput(
            patient_id=_text(raw.get('patient_id') or raw.get('patientId')),
            name=_text(raw.get('name')),
            raw_payload=raw,
        )

    def validate(self, result: AdmissionInput) -> None:
        if not result.patient_id:
            raise ValidationError(
                message='Request validation failed.',
                code='VALIDATION_ERROR',
                detail={'errors': [{'field': 'patient_id', 'message': 'Patient id is required.'}]},
            )
