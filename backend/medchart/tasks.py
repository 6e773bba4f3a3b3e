import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=0,            # 失败不自动重试：由用户重新编辑 / resave 触发下一次保存
    acks_late=True,           # 任务执行完才 ack，防止 worker 崩溃时任务丢失
    reject_on_worker_lost=True,
)
def persist_patient_document(self, patient_id: str, document: dict):
    """
    整文档覆盖写 PatientDocument。

    由 CeleryDocumentStore 派发并等待结果；异常原样抛出，
    调用方据此把对应的 SaveTask 标记为 error。
    """
    from medchart.store.stores import DjangoDocumentStore

    logger.info("[Celery][persist_patient_document] 开始写入 patient_id=%s revision=%s",
                patient_id, document.get('revision'))

    try:
        DjangoDocumentStore().write(patient_id, document)
    except Exception as exc:
        logger.warning("[Celery] patient_id=%s 写入失败: %s", patient_id, str(exc))
        raise

    logger.info("[Celery] patient_id=%s 写入完成", patient_id)
    return {'patient_id': patient_id, 'revision': document.get('revision')}
