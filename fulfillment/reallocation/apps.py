from django.apps import AppConfig


class ReallocationConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'reallocation'
    verbose_name = 'Fulfillment Reallocation'
