"""
persist_patient_document Celery 任务：直接调用 .run() 测任务体。
"""
import pytest

from medchart.models import PatientDocument
from medchart.tasks import persist_patient_document


@pytest.mark.django_db
class TestPersistPatientDocument:

    def test_writes_document(self):
        result = persist_patient_document.run('NICU-1', {'patientId': 'NICU-1', 'name': 'Baby', 'revision': 5})

        assert result == {'patient_id': 'NICU-1', 'revision': 5}
        assert PatientDocument.objects.get(patient_id='NICU-1').display_name == 'Baby'

    def test_failure_propagates(self, monkeypatch):
        from medchart.store import stores

        def broken(self, patient_id, document):
            raise RuntimeError('disk full')

        monkeypatch.setattr(stores.DjangoDocumentStore, 'write', broken)
        with pytest.raises(RuntimeError, match='disk full'):
            persist_patient_document.run('NICU-1', {})
        assert PatientDocument.objects.count() == 0

    def test_no_automatic_retry(self):
        assert persist_patient_document.max_retries == 0
