from django.apps import AppConfig


class ShortcodesConfig(AppConfig):
    name = "django_shortcodes"

    # This is the code that gets run when user adds django_shortcodes
    # to Django's INSTALLED_APPS
    def ready(self) -> None:
        from django_shortcodes.autodiscovery import import_libraries

        # Import modules set in `SHORTCODES.libraries` setting
        import_libraries()
