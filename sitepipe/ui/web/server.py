"""
Dev server — Flask app factory.

Serves the build output tree, injects the live-reload client into HTML
responses and streams reload signals over SSE. Runs on a daemon thread
next to the asyncio watch loop; the two only share the EventBus.
"""

from __future__ import annotations

import logging
import threading
import webbrowser

from flask import Flask

from sitepipe.core.models.config import BuildConfig
from sitepipe.core.observability.logging_config import dev_server_level
from sitepipe.core.services.event_bus import EventBus, bus as default_bus

logger = logging.getLogger(__name__)


def create_app(
    config: BuildConfig,
    *,
    live_reload: bool = True,
    event_bus: EventBus | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Site configuration (output tree, index name, dev options).
        live_reload: Inject the reload client and expose the SSE stream.
        event_bus: Source of reload signals (default: the module bus).

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__, static_folder=None)

    app.config["DIST_DIR"] = str(config.dist_dir)
    app.config["INDEX_DOCUMENT"] = config.files.html.index
    app.config["LIVE_RELOAD"] = live_reload
    app.config["NOTIFY"] = config.dev.notify
    app.config["EVENT_BUS"] = event_bus or default_bus
    app.config["SSE_HEARTBEAT_S"] = 15.0

    from sitepipe.ui.web.routes_events import events_bp
    from sitepipe.ui.web.routes_site import site_bp

    if live_reload:
        app.register_blueprint(events_bp)
    app.register_blueprint(site_bp)

    logger.info("Dev server app created (dist=%s)", config.dist_dir)
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 3000,
    *,
    log_level: str = "info",
    open_browser: bool = False,
) -> threading.Thread:
    """Run the Flask server on a daemon thread and return the thread."""
    logging.getLogger("werkzeug").setLevel(dev_server_level(log_level))
    url = f"http://{host}:{port}/"

    def _serve() -> None:
        app.run(host=host, port=port, debug=False, use_reloader=False, threaded=True)

    t = threading.Thread(target=_serve, daemon=True, name="sitepipe-dev-server")
    t.start()
    logger.info("Serving on %s", url)

    if open_browser:
        webbrowser.open(url)
    return t
