"""Django app configuration for django-dive-billing."""

from django.apps import AppConfig


class DiveBillingConfig(AppConfig):
    """App configuration for django-dive-billing."""

    name = "django_dive_billing"
    label = "dive_billing"
    verbose_name = "Dive Billing"
    default_auto_field = "django.db.models.BigAutoField"
