"""
Itinero Travel – route optimization service entry point

* Flask app + Socket.IO exposing the route optimizer over JSON and WebSocket.
* No eventlet/gevent required; Socket.IO runs in threading mode.
* The Socket.IO namespace is `/travel/ws`, which must be used by the
  JavaScript client.
"""

import os
import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from dotenv import load_dotenv

# --------------------------------------------------------------------------- #
# Environment & logging
# --------------------------------------------------------------------------- #
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

from itinero_travel.api.config import (  # noqa: E402
    get_port,
    get_websocket_config,
    validate_optimizer_config,
)
from itinero_travel.api.services.usage_service import create_usage_tracker  # noqa: E402
from itinero_travel.routes.travel import create_travel_blueprint  # noqa: E402
from itinero_travel.routes.websocket import register_websocket_handlers  # noqa: E402


def create_app(tracker=None):
    """Build the Flask app and its Socket.IO server.

    Args:
        tracker: UsageTracker to share across endpoints; one backed by the
            configured store is created when omitted

    Returns:
        (app, socketio)
    """
    validate_optimizer_config()

    app = Flask(__name__)

    flask_secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(32).hex()
    if "FLASK_SECRET_KEY" not in os.environ:
        logger.warning("No FLASK_SECRET_KEY found. Generated a temporary key.")
    app.secret_key = flask_secret_key

    # CORS for local dev / cross-origin front-end requests
    CORS(app, origins="*", supports_credentials=True)

    ws_config = get_websocket_config()
    socketio = SocketIO(
        app,
        cors_allowed_origins=ws_config["cors_allowed_origins"],
        async_mode="threading",
        ping_interval=ws_config["ping_interval"],
        ping_timeout=ws_config["ping_timeout"],
        logger=False,
        engineio_logger=False,
    )
    logger.info("Socket.IO initialised (async_mode=threading)")

    base_dir = os.path.dirname(os.path.abspath(__file__))
    app.register_blueprint(create_travel_blueprint(base_dir, tracker or create_usage_tracker()))
    register_websocket_handlers(socketio)

    @app.route("/debug")
    def debug():
        """Simple JSON health endpoint."""
        return {
            "status": "ok",
            "socketio_initialized": True,
            "endpoints": {
                "optimize_day": "/travel/api/optimize/day",
                "optimize_trip": "/travel/api/optimize/trip",
                "websocket_namespace": "/travel/ws",
            },
        }

    return app, socketio


app, socketio = create_app()

# --------------------------------------------------------------------------- #
# Local development runner ( `python main.py` )
# --------------------------------------------------------------------------- #
if __name__ == "__main__":
    port = get_port()
    logger.info(f"Starting travel app on http://localhost:{port}")
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)

__all__ = ["app", "socketio", "create_app"]
