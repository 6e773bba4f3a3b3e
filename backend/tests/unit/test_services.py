"""
PatientSessions：打开 / 入院 / 关闭。每个患者只有一个 Coordinator。
"""
import pytest
from asgiref.sync import async_to_sync

from medchart.coordinator import SaveStatus
from medchart.exceptions import BlockError
from medchart.services import PatientSessions
from medchart.store import InMemoryDocumentStore


@pytest.fixture
def registry(store, save_queue):
    return PatientSessions(store=store, save_queue=save_queue)


class TestOpen:

    def test_loads_document(self, registry, store):
        store.documents['NICU-1'] = {'patientId': 'NICU-1', 'name': 'Baby of Anita', 'revision': 7}

        coordinator = async_to_sync(registry.open)('NICU-1')

        assert coordinator.current.name == 'Baby of Anita'
        assert coordinator.current.revision == 7

    def test_same_coordinator_for_every_panel(self, registry, store):
        store.documents['NICU-1'] = {'patientId': 'NICU-1'}
        first = async_to_sync(registry.open)('NICU-1')
        second = async_to_sync(registry.open)('NICU-1')
        assert first is second

    def test_unknown_patient(self, registry):
        with pytest.raises(BlockError) as exc_info:
            async_to_sync(registry.open)('NICU-404')
        assert exc_info.value.code == 'PATIENT_NOT_FOUND'
        assert exc_info.value.http_status == 404

    def test_close_reloads_next_time(self, registry, store):
        store.documents['NICU-1'] = {'patientId': 'NICU-1', 'revision': 1}
        first = async_to_sync(registry.open)('NICU-1')
        assert registry.close('NICU-1') is True
        assert registry.close('NICU-1') is False
        assert async_to_sync(registry.open)('NICU-1') is not first


class TestAdmit:

    def test_admit_saves_empty_chart(self, registry, store):
        async def scenario():
            coordinator, task = await registry.admit(' NICU-2 ', 'Baby of Meera')
            await registry.save_queue.wait(task.id)
            return coordinator, task

        coordinator, task = async_to_sync(scenario)()

        assert coordinator.patient_id == 'NICU-2'
        assert task.status is SaveStatus.SAVED
        assert task.payload_summary == 'Admitted Baby of Meera'
        assert store.documents['NICU-2']['medications'] == []
        assert store.documents['NICU-2']['revision'] == 1

    def test_duplicate_admission_blocked(self, registry, store):
        store.documents['NICU-1'] = {'patientId': 'NICU-1'}
        with pytest.raises(BlockError) as exc_info:
            async_to_sync(registry.admit)('NICU-1', 'Baby')
        assert exc_info.value.code == 'PATIENT_EXISTS'
        assert exc_info.value.http_status == 409

    def test_patient_id_required(self, registry):
        with pytest.raises(BlockError) as exc_info:
            async_to_sync(registry.admit)('  ', 'Baby')
        assert exc_info.value.http_status == 400


class TestDefaults:

    def test_store_from_settings(self, settings):
        settings.MEDCHART_DOCUMENT_STORE = 'memory'
        assert isinstance(PatientSessions().store, InMemoryDocumentStore)

    def test_reset_drops_coordinators(self, registry, store):
        store.documents['NICU-1'] = {'patientId': 'NICU-1'}
        first = async_to_sync(registry.open)('NICU-1')
        registry.reset(store=store)
        assert async_to_sync(registry.open)('NICU-1') is not first
