from django.apps import AppConfig


class IndexConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "django_ai_search.contrib.index"
    verbose_name = "Django AI Search Semantic Indexing Module"
