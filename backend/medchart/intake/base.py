"""
BaseIntakeAdapter：所有 panel 输入 Adapter 的抽象基类。

每种新输入只需：
1. 继承 BaseIntakeAdapter
2. 实现 transform()（parse() 默认按 JSON 解析）
3. 在 factory.py 的 _build_registry 注册一行
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from ..chart.lifecycle import normalize_route
from ..exceptions import ValidationError
from .types import MedicationInput


class BaseIntakeAdapter(ABC):
    """
    三步流水线：parse → transform → validate

    子类必须实现 transform()；
    validate() 提供通用 route 校验，子类可 super() 后追加检查。
    """

    kind: str = ''

    def __init__(self, raw_body: bytes | str | dict, content_type: str = ''):
        self._raw_body = raw_body
        self._content_type = content_type
        self._parsed: dict = {}

    def parse(self) -> dict:
        if isinstance(self._raw_body, dict):
            raw = self._raw_body
        else:
            try:
                raw = json.loads(self._raw_body or '{}')
            except (TypeError, ValueError) as exc:
                raise ValidationError(
                    message='Request body is not valid JSON.',
                    code='MALFORMED_JSON',
                    detail={'error': str(exc)},
                )
        if not isinstance(raw, dict):
            raise ValidationError(
                message='Request body must be a JSON object.',
                code='MALFORMED_JSON',
            )
        self._parsed = raw
        return raw

    @abstractmethod
    def transform(self) -> Any:
        """将 self._parsed 转换为 intake/types.py 里的结构。"""

    def _medication_errors(self, medication: MedicationInput, prefix: str = '') -> list[dict]:
        try:
            medication.route = normalize_route(medication.route)
        except ValidationError as exc:
            return [{'field': f'{prefix}route', 'message': exc.message}]
        return []

    def validate(self, result: Any) -> None:
        """默认不校验。空药名 / 空剂量由 lifecycle.add() 统一拦截。"""

    def process(self) -> Any:
        """parse → transform → validate，返回校验通过的输入结构。"""
        self.parse()
        result = self.transform()
        self.validate(result)
        return result
