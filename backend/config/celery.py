"""
Celery app：只在 MEDCHART_DOCUMENT_STORE=celery 时用到。

worker 负责把整文档写进 PatientDocument：
    celery -A config worker -l info
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('medchart')

# CELERY_ 前缀的配置（broker / result backend / eager）都在 settings 里
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
