import uuid
from django.db import models


class PatientDocument(models.Model):
    """
    一个患者一行，整文档存在 document 里（整文档覆盖写）。

    display_name / revision 是 document 的冗余列，方便后台列表查询。
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient_id = models.CharField(max_length=64, unique=True)
    display_name = models.CharField(max_length=200, blank=True)
    revision = models.PositiveIntegerField(default=0)
    document = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_documents'
