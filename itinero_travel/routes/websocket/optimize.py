# itinero_travel/routes/websocket/optimize.py
"""WebSocket handler that runs route optimization with live progress."""

import logging

from .base import BaseWebSocketHandler
from itinero_travel.api.models import DayPlan, Origin
from itinero_travel.api.services.route_service import NOTHING_TO_OPTIMIZE, RouteService

logger = logging.getLogger(__name__)

MODES = ("single", "all")


class OptimizeHandler(BaseWebSocketHandler):
    """Handles the ``optimize`` event.

    Mode ``single`` optimizes the selected ``day_number`` only, mode ``all``
    optimizes every day. An ``optimization_progress`` event follows each
    finished day and ``optimization_complete`` carries the result.
    """

    def register_handlers(self):
        """Register optimization event handlers."""

        @self.socketio.on('optimize', namespace=self.namespace)
        def handle_optimize(data):
            data = data or {}
            if not isinstance(data, dict):
                self.handle_error(ValueError('Payload must be an object'), 'optimize')
                return
            mode = data.get('mode', 'single')
            self.log_event('optimize', {'mode': mode, 'day_number': data.get('day_number')})

            try:
                if mode not in MODES:
                    raise ValueError(f"Invalid mode. Must be one of: {', '.join(MODES)}")

                days = DayPlan.list_from_dicts(data.get('days'))
                origin = Origin.from_dict(data.get('origin'))

                if mode == 'single':
                    days = [d for d in days if d.day_number == data.get('day_number')]
                    if not days:
                        raise ValueError('Day not found')

                if not any(RouteService.has_routable_stops(d.stops) for d in days):
                    raise ValueError(NOTHING_TO_OPTIMIZE)

                def progress(route, completed, total):
                    self.emit_to_client('optimization_progress', {
                        'day_number': route.day_number,
                        'progress': int(completed * 100 / total),
                    })

                trip = RouteService.plan_trip(days, origin, on_day_complete=progress)

            except ValueError as e:
                self.handle_error(e, 'optimize')
                return
            except Exception as e:
                logger.exception(f"Optimization failed in mode '{mode}'")
                self.handle_error(e, 'optimize')
                return

            logger.info(f"Optimized {len(trip.days)} day(s) in mode '{mode}'")
            self.emit_to_client('optimization_complete', {'mode': mode, **trip.to_dict()})
