"""
MAR 分组：类别固定顺序、空类别省略、保留原始 index、Stopped 单独列出。
"""
from datetime import timedelta

from medchart.chart import lifecycle
from medchart.chart.presenter import DISPLAY_ORDER, build_chart
from medchart.chart.types import Category
from tests.conftest import T0, MedicationRecordFactory, StoppedMedicationFactory


def _meds():
    return (
        MedicationRecordFactory(name='Caffeine citrate', frequency='OD'),   # 0 Respiratory
        MedicationRecordFactory(name='Ampicillin', frequency='q12h'),       # 1 Antibiotic
        StoppedMedicationFactory(name='Gentamicin'),                        # 2 stopped
        MedicationRecordFactory(name='Xyzzy', frequency=''),                # 3 Other
        MedicationRecordFactory(name='Cefotaxime', frequency='q8h'),        # 4 Antibiotic
        StoppedMedicationFactory(name='Dopamine'),                          # 5 stopped
    )


class TestBuildChart:

    def test_groups_in_display_order_and_omits_empty(self):
        chart = build_chart(_meds(), now=T0)
        assert [g.category for g in chart.groups] == [
            Category.ANTIBIOTIC, Category.RESPIRATORY, Category.OTHER,
        ]

    def test_entries_keep_original_index(self):
        chart = build_chart(_meds(), now=T0)
        antibiotics = chart.groups[0].entries
        assert [(e.record.name, e.index) for e in antibiotics] == [('Ampicillin', 1), ('Cefotaxime', 4)]

    def test_counts(self):
        chart = build_chart(_meds(), now=T0)
        assert chart.active_count == 4
        assert chart.stopped_count == 2

    def test_stopped_hidden_by_default(self):
        chart = build_chart(_meds(), now=T0)
        assert chart.stopped == ()
        assert chart.stopped_count == 2

    def test_stopped_in_insertion_order_when_visible(self):
        chart = build_chart(_meds(), show_stopped=True, now=T0)
        assert [(e.record.name, e.index) for e in chart.stopped] == [('Gentamicin', 2), ('Dopamine', 5)]

    def test_slots_and_days_running(self):
        chart = build_chart(_meds(), now=T0 + timedelta(hours=36))
        entry = chart.groups[0].entries[1]
        assert entry.slots == ('06:00', '14:00', '22:00')
        assert entry.days_running == 2

    def test_stopped_days_running_frozen(self):
        chart = build_chart(_meds(), show_stopped=True, now=T0 + timedelta(days=40))
        assert chart.stopped[0].days_running == 3

    def test_missing_start_date(self):
        chart = build_chart((MedicationRecordFactory(start_date=None),), now=T0)
        assert chart.groups[0].entries[0].days_running == 1

    def test_empty_list(self):
        chart = build_chart((), now=T0)
        assert chart.groups == ()
        assert chart.active_count == chart.stopped_count == 0

    def test_display_order_covers_every_category(self):
        assert set(DISPLAY_ORDER) == set(Category)


class TestIndexStability:

    def test_stop_from_grouped_view_hits_correct_record(self, actor):
        meds = _meds()
        chart = build_chart(meds, now=T0)
        # 分组视图里排第二的抗生素，视图位置和完整列表位置都不一样
        target = chart.groups[0].entries[1]
        assert target.record.name == 'Cefotaxime'

        result = lifecycle.stop(meds, target.index, actor, now=T0)

        stopped = [m for m in result if not m.is_active]
        assert target.record.id in {m.id for m in stopped}
        by_id = {m.id: m for m in result}
        assert by_id[target.medication_id].is_active is False
        assert by_id[meds[1].id].is_active is True

    def test_every_entry_index_points_at_its_record(self):
        meds = _meds()
        chart = build_chart(meds, show_stopped=True, now=T0)
        for entry in [*chart.entries(), *chart.stopped]:
            assert meds[entry.index] is entry.record
