"""
给药频次 → 给药时间点（slot）。

纯展示层推导，每次渲染现算，不存储。按表顺序第一个命中的胜出；
都不命中时返回 ["As ordered"]，所以结果永远非空。

频次代码按「词首」匹配（大小写无关）：前面不能紧跟字母，后面不限，
所以 "q8hrly" / "BDx5d" 能命中，"unknown-code" 里的 "od" 不会。
"""

import re

FALLBACK_SLOTS = ('As ordered',)

SLOT_TABLE: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (('continuous', 'infusion'), ('Continuous',)),
    (('stat', 'once'),           ('STAT',)),
    (('od', 'daily', 'q24h'),    ('08:00',)),
    (('bd', 'q12h', 'twice'),    ('08:00', '20:00')),
    (('tid', 'q8h', 'three'),    ('06:00', '14:00', '22:00')),
    (('qid', 'q6h', 'four'),     ('06:00', '12:00', '18:00', '24:00')),
    (('q4h',),                   ('02:00', '06:00', '10:00', '14:00', '18:00', '22:00')),
    (('prn',),                   ('PRN',)),
)

_MATCHERS = tuple(
    (re.compile(r'(?<![a-z])(?:' + '|'.join(patterns) + r')', re.IGNORECASE), slots)
    for patterns, slots in SLOT_TABLE
)


def derive_slots(frequency: str | None) -> list[str]:
    freq = frequency or ''
    for matcher, slots in _MATCHERS:
        if matcher.search(freq):
            return list(slots)
    return list(FALLBACK_SLOTS)
