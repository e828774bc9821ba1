# ------------------------------------------------------------------------------
# ASGI entrypoint:  hypercorn asgi:app --bind 0.0.0.0:$PORT
#
# Loads .env, configures logging, then builds the app. The store and queue
# worker are opened by the app's before_serving hook, not at import.
# ------------------------------------------------------------------------------

from app import create_app
from config import Settings
from logging_config import configure_logging

settings = Settings.from_env()
configure_logging(settings.log_level, settings.log_format)

app = create_app(settings)
