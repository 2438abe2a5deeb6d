# itinero_travel/routes/websocket/connection.py
"""WebSocket connection and disconnection handlers."""

import time
import logging

from .base import BaseWebSocketHandler

logger = logging.getLogger(__name__)


class ConnectionHandler(BaseWebSocketHandler):
    """Handles WebSocket connection lifecycle events."""

    def register_handlers(self):
        """Register connection-related event handlers."""

        @self.socketio.on('connect', namespace=self.namespace)
        def handle_connect(auth=None):
            """Handle WebSocket connection from browser."""
            client_info = self.get_client_info()
            self.log_event('connect')

            self.emit_to_client('connected', {
                'sid': client_info['sid'],
                'status': 'connected',
            })

        @self.socketio.on('disconnect', namespace=self.namespace)
        def handle_disconnect(reason=None):
            """Handle WebSocket disconnection."""
            logger.info(f"🔌 WebSocket disconnected from {self.namespace}")

        @self.socketio.on('ping', namespace=self.namespace)
        def handle_ping(data=None):
            """Handle ping for connection testing."""
            self.emit_to_client('pong', {'timestamp': time.time()})
