"""Django app configuration for Seedman."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class SeedmanConfig(AppConfig):
    """Configuration for Seedman app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "seedman"
    verbose_name = _("Gestão de Lotes de Sementes")
