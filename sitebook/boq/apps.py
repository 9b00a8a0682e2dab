from django.apps import AppConfig


class BoqConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'sitebook.boq'
    verbose_name = 'Bill of quantities'
