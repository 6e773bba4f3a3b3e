from django.urls import path
from .views import (
    MedicationChartView,
    MedicationCreateView,
    MedicationDeleteView,
    MedicationStopView,
    PatientAdmitView,
    PatientResaveView,
    PatientSessionCloseView,
    ProgressNoteCreateView,
    SaveTaskDismissView,
    SaveTaskListView,
)

urlpatterns = [
    path('patients/', PatientAdmitView.as_view(), name='patient-admit'),
    path('patients/<str:patient_id>/chart', MedicationChartView.as_view(), name='medication-chart'),
    path('patients/<str:patient_id>/medications/', MedicationCreateView.as_view(), name='medication-create'),
    path('patients/<str:patient_id>/medications/<str:medication_id>/stop',
         MedicationStopView.as_view(), name='medication-stop'),
    path('patients/<str:patient_id>/medications/<str:medication_id>',
         MedicationDeleteView.as_view(), name='medication-delete'),
    path('patients/<str:patient_id>/notes/', ProgressNoteCreateView.as_view(), name='note-create'),
    path('patients/<str:patient_id>/resave', PatientResaveView.as_view(), name='patient-resave'),
    path('patients/<str:patient_id>/session', PatientSessionCloseView.as_view(), name='patient-session-close'),
    path('save-tasks/', SaveTaskListView.as_view(), name='save-task-list'),
    path('save-tasks/<str:task_id>', SaveTaskDismissView.as_view(), name='save-task-dismiss'),
]
