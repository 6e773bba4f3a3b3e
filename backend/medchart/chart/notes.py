"""
从病程记录正文里提取用药，并去重合并到用药列表。

正文里的用药段落形如：

    Medications:
    - Inj Vancomycin 15mg/kg IV q12h
    - Tab Phenobarbitone 5 mg PO BD
    - Caffeine citrate 5mg/kg PO OD

段落在空行、"IV Fluids:"、"Feeds:"、"IMPRESSION"、"PLAN" 处结束。
"""

import re
from collections.abc import Sequence
from datetime import datetime

from django.utils import timezone

from .types import Actor, MedicationRecord, Route

DEFAULT_DOSE = 'As per protocol'

SECTION_RE = re.compile(
    r'Medications?:\s*(.*?)(?=\n\s*\n|\n\s*(?:IV Fluids:|Feeds:|IMPRESSION|PLAN)|\Z)',
    re.IGNORECASE | re.DOTALL,
)
BULLET_RE = re.compile(r'^[-•*]\s*')
PREFIX_RE = re.compile(r'^(?:inj|tab|syp|cap|susp)\.?$', re.IGNORECASE)
DOSE_RE = re.compile(
    r'^\d+(?:\.\d+)?\s*(?:mg|mcg|g|ml|units?)?(?:/kg)?(?:/dose)?(?:/day)?$',
    re.IGNORECASE,
)
UNIT_RE = re.compile(r'^(?:mg|mcg|g|ml|units?)(?:/kg)?(?:/dose)?(?:/day)?$', re.IGNORECASE)
FREQUENCY_RE = re.compile(
    r'^(?:q\d+h|bd|tds|tid|qid|od|prn|stat|once|twice|thrice|daily)$',
    re.IGNORECASE,
)
STOP_WORDS = {'at', 'with', 'for', 'in', 'on', 'to', 'and', 'or', 'the'}

ROUTE_WORDS = {route.value.lower(): route.value for route in Route}
ROUTE_WORDS.update({
    'oral': Route.PO.value,
    'intravenous': Route.IV.value,
    'topical': Route.TOP.value,
})


def _route_at(tokens: list[str], i: int) -> tuple[str | None, int]:
    """返回 (route 代码, 消耗的 token 数)。"Per Oral" 占两个 token。"""
    word = tokens[i].lower()
    if word == 'per' and i + 1 < len(tokens) and tokens[i + 1].lower() == 'oral':
        return Route.PO.value, 2
    if word in ROUTE_WORDS:
        return ROUTE_WORDS[word], 1
    return None, 0


def _is_marker(tokens: list[str], i: int) -> bool:
    token = tokens[i]
    return (
        token[0].isdigit()
        or FREQUENCY_RE.match(token) is not None
        or _route_at(tokens, i)[0] is not None
    )


def parse_medication_line(line: str) -> dict | None:
    """
    解析一行用药。返回 {'name', 'dose', 'route', 'frequency'}，
    药名不足 3 个字符时返回 None。
    """
    clean = BULLET_RE.sub('', line.strip())
    if not clean or 'continue current' in clean.lower():
        return None

    tokens = clean.split()
    if tokens and PREFIX_RE.match(tokens[0]):
        tokens = tokens[1:]

    i = 0
    name_tokens = []
    while i < len(tokens) and not _is_marker(tokens, i):
        name_tokens.append(tokens[i])
        i += 1
    while name_tokens and name_tokens[-1].lower() in STOP_WORDS:
        name_tokens.pop()

    name = ' '.join(name_tokens)
    if len(name) <= 2 or not name[0].isalpha():
        return None

    dose = route = frequency = None
    while i < len(tokens):
        token = tokens[i]
        if dose is None and DOSE_RE.match(token):
            # "15 mg/kg" 拆成了两个 token
            if i + 1 < len(tokens) and token.replace('.', '', 1).isdigit() and UNIT_RE.match(tokens[i + 1]):
                dose = f'{token} {tokens[i + 1]}'
                i += 2
                continue
            dose = token
        elif frequency is None and FREQUENCY_RE.match(token):
            frequency = token
            if i + 1 < len(tokens) and tokens[i + 1].lower() == 'daily' and token.lower() in ('twice', 'thrice'):
                frequency = f'{token} {tokens[i + 1]}'
                i += 1
        elif route is None:
            route, consumed = _route_at(tokens, i)
            if consumed > 1:
                i += consumed - 1
        i += 1

    return {
        'name': name,
        'dose': dose or DEFAULT_DOSE,
        'route': route or '',
        'frequency': frequency or '',
    }


def extract_medications(
    text: str,
    actor: Actor,
    now: datetime | None = None,
) -> tuple[MedicationRecord, ...]:
    """从正文中提取用药段落，每行生成一条 Active MedicationRecord。"""
    match = SECTION_RE.search(text or '')
    if not match:
        return ()

    now = now or timezone.now()
    records = []
    for line in match.group(1).splitlines():
        parsed = parse_medication_line(line)
        if parsed is None:
            continue
        records.append(MedicationRecord(
            name=parsed['name'],
            dose=parsed['dose'],
            route=parsed['route'] or Route.IV.value,
            frequency=parsed['frequency'],
            is_active=True,
            start_date=now,
            added_by=actor.attribution,
        ))
    return tuple(records)


def merge_medications(
    existing: Sequence[MedicationRecord],
    incoming: Sequence[MedicationRecord],
) -> tuple[tuple[MedicationRecord, ...], tuple[MedicationRecord, ...]]:
    """
    只追加「新」药：与已有 Active 记录同名（大小写无关）的跳过，
    incoming 内部重复的也只留第一条。Stopped 的同名药不算重复，可以重新开。

    返回 (合并后的完整列表, 实际追加的记录)。
    """
    seen = {record.name.lower() for record in existing if record.is_active}
    added = []
    for record in incoming:
        key = record.name.lower()
        if key in seen:
            continue
        seen.add(key)
        added.append(record)
    return (*existing, *added), tuple(added)
