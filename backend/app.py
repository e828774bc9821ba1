from typing import Optional

from quart import Quart

from config import Settings
from services import Services
from transport.debug import debug_bp
from transport.tools import tools_bp
from transport.webhooks import webhooks_bp


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> Quart:
    settings = settings or Settings.from_env()
    services = services or Services.build(settings)

    app = Quart(__name__)
    app.extensions["services"] = services

    app.register_blueprint(webhooks_bp, url_prefix="/webhooks")
    app.register_blueprint(tools_bp, url_prefix="/tools")
    app.register_blueprint(debug_bp, url_prefix="/debug")

    # Store + queue worker live exactly as long as the server does
    @app.before_serving
    async def _startup():
        await services.startup()

    @app.after_serving
    async def _shutdown():
        await services.shutdown()

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


# Local debug (use hypercorn asgi:app for prod-like behavior)
if __name__ == "__main__":
    from logging_config import configure_logging

    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_format)
    create_app(settings).run(host="0.0.0.0", port=settings.port, debug=True)
