from django.apps import AppConfig


class SearchConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "django_ai_search"
    label = "django_ai_search"
    verbose_name = "Django AI Search"
