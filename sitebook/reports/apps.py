from django.apps import AppConfig


class ReportsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'sitebook.reports'

    def ready(self):
        from .signals import connect_signals
        connect_signals()
