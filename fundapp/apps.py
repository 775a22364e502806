# fundapp/apps.py
from django.apps import AppConfig


class FundappConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "fundapp"
    verbose_name = "Fundraising targets"
