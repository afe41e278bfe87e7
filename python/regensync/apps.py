from django.apps import AppConfig


class RegenSyncAppConfig(AppConfig):
    name = "regensync"
    label = "regensync"
    verbose_name = "RegenSync offline engine"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        # Import the engine so every regensync.* module logger exists, then
        # sanitize string args on all of them.
        import regensync.backends.database  # noqa: F401
        import regensync.backends.redis  # noqa: F401
        import regensync.registry  # noqa: F401
        import regensync.views  # noqa: F401
        from regensync.security import install_log_sanitizer

        install_log_sanitizer("regensync")
