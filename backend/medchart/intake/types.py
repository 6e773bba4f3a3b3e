"""
Panel 输入的标准格式。

所有 Adapter 的 transform() 返回这里的结构；
Coordinator 的 panel 命令只消费这些结构，永远不碰原始请求体。
"""

from dataclasses import dataclass, field
from typing import Any

from ..chart.types import ClinicalExamination, VitalSigns


@dataclass
class MedicationInput:
    name: str
    dose: str
    route: str = 'IV'
    frequency: str = 'q12h'
    raw_payload: Any = field(default=None, repr=False)


@dataclass
class NoteInput:
    """
    extract  为 True 时，从 note 正文的 "Medications:" 段落提取用药并合并进用药列表。
    """

    note: str = ''
    vitals: VitalSigns | None = None
    examination: ClinicalExamination | None = None
    medications: list[MedicationInput] = field(default_factory=list)
    extract: bool = False
    raw_payload: Any = field(default=None, repr=False)


@dataclass
class AdmissionInput:
    patient_id: str
    name: str = ''
    raw_payload: Any = field(default=None, repr=False)
