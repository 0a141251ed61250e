from django.apps import AppConfig


class ShortsfeedConfig(AppConfig):
    """Configuration for the shortsfeed Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'shortsfeed'
