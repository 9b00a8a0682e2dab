from django.apps import AppConfig


class DocumentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'sitebook.documents'

    def ready(self):
        from .signals import connect_signals
        connect_signals()
