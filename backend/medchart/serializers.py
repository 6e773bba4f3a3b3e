"""
Response serializers：core 对象 → JSON-able dict。

只负责「输出格式化」，不做任何解析或校验。
输入解析和校验在 medchart/intake/ adapter 系统。
"""


def serialize_task(task):
    response = {
        'task_id': task.id,
        'patient_id': task.patient_id,
        'summary': task.payload_summary,
        'status': task.status.value,
        'revision': task.revision,
        'created_at': task.created_at.isoformat(),
    }
    if task.error_message is not None:
        response['error'] = {
            'message': task.error_message,
            'retry_allowed': True,
        }
    return response


def serialize_tasks(tasks):
    results = [serialize_task(task) for task in tasks]
    return {
        'count': len(results),
        'tasks': results,
    }


def serialize_entry(entry):
    record = entry.record
    response = record.to_document()
    response.update({
        'index': entry.index,
        'category': entry.category.value,
        'slots': list(entry.slots),
        'days_running': entry.days_running,
    })
    return response


def serialize_chart(aggregate, chart):
    """MAR 视图：按类别分组的 Active 用药 + 可选的 Stopped 列表。"""
    response = {
        'patient_id': aggregate.patient_id,
        'name': aggregate.name,
        'revision': aggregate.revision,
        'active_count': chart.active_count,
        'stopped_count': chart.stopped_count,
        'groups': [
            {
                'category': group.category.value,
                'medications': [serialize_entry(entry) for entry in group.entries],
            }
            for group in chart.groups
        ],
    }
    if chart.show_stopped:
        response['stopped'] = [serialize_entry(entry) for entry in chart.stopped]
    return response


def serialize_mutation(aggregate, task, **extra):
    """panel 命令的 202 响应：新的 revision + 排队中的 SaveTask。"""
    response = {
        'patient_id': aggregate.patient_id,
        'revision': aggregate.revision,
        'save_task': serialize_task(task),
    }
    response.update(extra)
    return response
