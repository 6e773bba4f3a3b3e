"""
药物分类器：药名 → Category。

规则表按固定优先级从上到下匹配，第一个命中的类别胜出（first-match-wins），
不是「最具体匹配」。例如 ibuprofen 同时出现在 Analgesic 和 Cardiac 规则里，
结果永远是排在前面的 Analgesic。

匹配为大小写无关的子串匹配，注意短词（ns / nan / iron ...）也是子串匹配。
"""

import re
from functools import lru_cache

from .types import Category

# ── 规则表（顺序即优先级） ──────────────────────────────────────────────────
RULES: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.ANTIBIOTIC, (
        'ampicillin', 'amoxicillin', 'penicillin', 'gentamicin', 'amikacin',
        'vancomycin', 'meropenem', 'cefotaxime', 'ceftazidime', 'ceftriaxone',
        'cefepime', 'piperacillin', 'tazobactam', 'metronidazole', 'clindamycin',
        'azithromycin', 'erythromycin', 'ciprofloxacin', 'levofloxacin',
        'colistin', 'linezolid', 'teicoplanin',
    )),
    (Category.ANTIFUNGAL, (
        'fluconazole', 'amphotericin', 'micafungin', 'caspofungin',
        'voriconazole', 'nystatin',
    )),
    (Category.INOTROPE, (
        'dopamine', 'dobutamine', 'epinephrine', 'adrenaline', 'norepinephrine',
        'noradrenaline', 'milrinone', 'vasopressin', 'phenylephrine',
    )),
    (Category.IV_FLUID, (
        'normal saline', 'ns', 'dns', 'd5', 'd10', 'ringer', 'lactate',
        'dextrose', 'isolyte', 'plasmalyte',
    )),
    (Category.TPN, (
        'tpn', 'parenteral', 'lipid', 'intralipid', 'smoflipid', 'aminoven',
        'primene', 'vaminolact',
    )),
    (Category.NUTRITION, (
        'feed', 'milk', 'formula', 'ebm', 'breast', 'fortifier', 'enfamil',
        'similac', 'nan', 'prenan',
    )),
    (Category.ANALGESIC, (
        'morphine', 'fentanyl', 'paracetamol', 'acetaminophen', 'ibuprofen',
        'tramadol',
    )),
    (Category.SEDATIVE, (
        'midazolam', 'lorazepam', 'diazepam', 'chloral', 'dexmedetomidine',
        'propofol', 'ketamine',
    )),
    (Category.ANTICONVULSANT, (
        'phenobarbital', 'phenobarbitone', 'phenytoin', 'levetiracetam',
        'topiramate', 'valproate',
    )),
    (Category.RESPIRATORY, (
        'caffeine', 'aminophylline', 'theophylline', 'salbutamol', 'albuterol',
        'budesonide', 'surfactant', 'curosurf', 'beractant',
    )),
    (Category.CARDIAC, (
        'digoxin', 'captopril', 'enalapril', 'furosemide', 'lasix',
        'spironolactone', 'hydrochlorothiazide', 'sildenafil', 'prostag',
        'alprostadil', 'ibuprofen',
    )),
    (Category.GI, (
        'ranitidine', 'omeprazole', 'pantoprazole', 'domperidone',
        'metoclopramide', 'ondansetron', 'lactulose', 'glycerin',
    )),
    (Category.VITAMIN, (
        'vitamin', 'multivitamin', 'iron', 'calcium', 'zinc', 'phosphorus',
        'potassium', 'sodium', 'magnesium',
    )),
)

_MATCHERS: tuple[tuple[Category, re.Pattern], ...] = tuple(
    (category, re.compile('|'.join(re.escape(term) for term in terms), re.IGNORECASE))
    for category, terms in RULES
)


@lru_cache(maxsize=1024)
def classify(name: str) -> Category:
    """返回药名所属类别；没有规则命中时返回 Category.OTHER。不会抛异常。"""
    if not name:
        return Category.OTHER
    for category, matcher in _MATCHERS:
        if matcher.search(name):
            return category
    return Category.OTHER
