from django.apps import AppConfig


class MedchartConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'medchart'
