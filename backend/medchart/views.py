"""
Panel 面向的 HTTP 接口。

View 只做三件事：解析输入（intake adapter）→ 调用 coordinator 命令 → 序列化输出。
写操作同步更新权威聚合后立即返回 202，保存在后台进行，进度看 save-tasks。

必须跑在 ASGI 下（uvicorn config.asgi:application），后台 SaveTask 依附于服务进程的事件循环。
"""

from django.http import JsonResponse
from django.views import View

from .chart.presenter import build_chart
from .chart.types import Actor
from .exception_handler import ExceptionHandlerMixin
from .intake import get_adapter
from .serializers import serialize_chart, serialize_mutation, serialize_task, serialize_tasks
from .services import sessions


def actor_from_request(request) -> Actor:
    """身份认证不在本服务内；上游网关把操作人写进请求头。"""
    return Actor(
        name=request.headers.get('X-Actor-Name', ''),
        email=request.headers.get('X-Actor-Email', ''),
        role=request.headers.get('X-Actor-Role', ''),
    )


def _intake(kind, request):
    return get_adapter(kind, request.body, request.content_type).process()


class PatientAdmitView(ExceptionHandlerMixin, View):
    """POST /api/patients/ - Admit a patient with an empty record"""

    async def post(self, request):
        admission = _intake('admission', request)
        coordinator, task = await sessions.admit(admission.patient_id, admission.name)
        return JsonResponse(serialize_mutation(coordinator.current, task), status=201)


class MedicationChartView(ExceptionHandlerMixin, View):
    """GET /api/patients/<patient_id>/chart?show_stopped=1 - Medication administration chart"""

    async def get(self, request, patient_id):
        coordinator = await sessions.open(patient_id)
        show_stopped = request.GET.get('show_stopped', '') in ('1', 'true', 'yes')
        aggregate = coordinator.current
        chart = build_chart(aggregate.medications, show_stopped=show_stopped)
        return JsonResponse(serialize_chart(aggregate, chart))


class MedicationCreateView(ExceptionHandlerMixin, View):
    """POST /api/patients/<patient_id>/medications/ - Start a medication"""

    async def post(self, request, patient_id):
        medication = _intake('medication', request)
        coordinator = await sessions.open(patient_id)
        task = coordinator.add_medication(medication, actor_from_request(request))
        aggregate = coordinator.current
        return JsonResponse(
            serialize_mutation(aggregate, task, medication=aggregate.medications[-1].to_document()),
            status=202,
        )


class MedicationStopView(ExceptionHandlerMixin, View):
    """POST /api/patients/<patient_id>/medications/<medication_id>/stop"""

    async def post(self, request, patient_id, medication_id):
        coordinator = await sessions.open(patient_id)
        task = coordinator.stop_medication(medication_id, actor_from_request(request))
        medication = coordinator.medication(medication_id)
        return JsonResponse(
            serialize_mutation(coordinator.current, task, medication=medication.to_document()),
            status=202,
        )


class MedicationDeleteView(ExceptionHandlerMixin, View):
    """DELETE /api/patients/<patient_id>/medications/<medication_id>"""

    async def delete(self, request, patient_id, medication_id):
        coordinator = await sessions.open(patient_id)
        task = coordinator.remove_medication(medication_id)
        return JsonResponse(serialize_mutation(coordinator.current, task), status=202)


class ProgressNoteCreateView(ExceptionHandlerMixin, View):
    """POST /api/patients/<patient_id>/notes/ - Append a progress note"""

    async def post(self, request, patient_id):
        note = _intake('note', request)
        coordinator = await sessions.open(patient_id)
        task = coordinator.append_note(note, actor_from_request(request))
        aggregate = coordinator.current
        return JsonResponse(
            serialize_mutation(aggregate, task, note=aggregate.progress_notes[-1].to_document()),
            status=202,
        )


class PatientResaveView(ExceptionHandlerMixin, View):
    """POST /api/patients/<patient_id>/resave - User-initiated retry after a failed save"""

    async def post(self, request, patient_id):
        coordinator = await sessions.open(patient_id)
        task = coordinator.resave()
        return JsonResponse(serialize_mutation(coordinator.current, task), status=202)


class SaveTaskListView(ExceptionHandlerMixin, View):
    """GET /api/save-tasks/?patient_id=... - Background save indicator"""

    async def get(self, request):
        patient_id = request.GET.get('patient_id') or None
        return JsonResponse(serialize_tasks(sessions.save_queue.tasks(patient_id)))


class SaveTaskDismissView(ExceptionHandlerMixin, View):
    """DELETE /api/save-tasks/<task_id> - Dismiss a finished save task"""

    async def delete(self, request, task_id):
        task = sessions.save_queue.dismiss(task_id)
        return JsonResponse(serialize_task(task))


class PatientSessionCloseView(ExceptionHandlerMixin, View):
    """DELETE /api/patients/<patient_id>/session - Close the patient view and release its coordinator"""

    async def delete(self, request, patient_id):
        closed = sessions.close(patient_id)
        return JsonResponse({
            'patient_id': patient_id,
            'closed': closed,
            'pending_saves': len(sessions.save_queue.pending(patient_id)),
        })
