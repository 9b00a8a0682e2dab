from django.apps import AppConfig


class FinanceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'sitebook.finance'
    verbose_name = 'Expenses and payments'
