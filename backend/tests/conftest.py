"""
Shared fixtures for all tests.

factory-boy factories live here so both unit/ and integration/ can import them.
"""
import pytest
from datetime import datetime, timedelta, timezone as dt_timezone

import factory
from medchart.chart.types import Actor, MedicationRecord, PatientAggregate, ProgressNote
from medchart.coordinator import AggregateCoordinator, SaveQueue
from medchart.models import PatientDocument
from medchart.services import sessions
from medchart.store import InMemoryDocumentStore

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=dt_timezone.utc)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class MedicationRecordFactory(factory.Factory):
    class Meta:
        model = MedicationRecord

    name = 'Ampicillin'
    dose = '50mg/kg'
    route = 'IV'
    frequency = 'q12h'
    is_active = True
    start_date = T0
    added_by = 'Dr. Rao'


class StoppedMedicationFactory(MedicationRecordFactory):
    is_active = False
    stop_date = factory.LazyAttribute(lambda o: o.start_date + timedelta(days=3))
    stopped_by = 'Dr. Rao'


class ProgressNoteFactory(factory.Factory):
    class Meta:
        model = ProgressNote

    date = T0
    note = 'Baby active, tolerating feeds.'
    added_by = 'Dr. Rao'


class PatientAggregateFactory(factory.Factory):
    class Meta:
        model = PatientAggregate

    patient_id = factory.Sequence(lambda n: f'NICU-{1000 + n}')
    name = 'Baby of Anita'
    medications = ()
    progress_notes = ()


class PatientDocumentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PatientDocument

    patient_id = factory.Sequence(lambda n: f'NICU-{5000 + n}')
    display_name = 'Baby of Meera'
    document = factory.LazyAttribute(lambda o: {'patientId': o.patient_id, 'name': o.display_name})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def actor():
    return Actor(name='Dr. Rao', email='rao@example.org', role='Doctor')


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def save_queue():
    return SaveQueue(saved_ttl=0)


@pytest.fixture
def make_coordinator(store, save_queue):
    """Coordinator 工厂：固定时钟，方便断言时间戳。"""

    def _make(aggregate=None, clock=lambda: T0 + timedelta(hours=6)):
        return AggregateCoordinator(
            aggregate if aggregate is not None else PatientAggregateFactory(),
            store,
            save_queue,
            clock=clock,
        )

    return _make


@pytest.fixture
def patient_sessions(store, save_queue):
    """全局会话注册表换成内存存储，测试结束后清空。"""
    sessions.reset(store=store, save_queue=save_queue)
    yield sessions
    sessions.reset()
