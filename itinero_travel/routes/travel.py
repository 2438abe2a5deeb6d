# itinero_travel/routes/travel.py
"""Travel routes and blueprint configuration."""

import logging
import os

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

from itinero_travel.api.config import get_google_maps_config
from itinero_travel.api.geocoding import fill_missing_coordinates, geocode_origin
from itinero_travel.api.models import DayPlan, Origin, Stop
from itinero_travel.api.services.route_service import NOTHING_TO_OPTIMIZE, RouteService
from itinero_travel.api.services.usage_service import UsageTracker

logger = logging.getLogger(__name__)


def create_travel_blueprint(base_dir, tracker=None):
    """Create and configure the travel blueprint.

    Args:
        base_dir: Absolute path to the application directory
        tracker: UsageTracker shared by the geocoding endpoints

    Returns:
        Configured Flask Blueprint
    """
    tracker = tracker or UsageTracker()

    travel_bp = Blueprint(
        "travel",
        __name__,
        static_folder=os.path.join(base_dir, 'static'),
        static_url_path='/static',
        url_prefix="/travel"
    )

    @travel_bp.errorhandler(ValueError)
    def bad_request(error):
        logger.warning(f"Rejected request to {request.path}: {error}")
        return jsonify({"error": str(error)}), 400

    @travel_bp.errorhandler(Exception)
    def unexpected_error(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception(f"Unhandled error in {request.path}: {error}")
        return jsonify({"error": "Internal server error"}), 500

    def json_body():
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        return data

    def with_coordinates(stops, city):
        """Geocode coordinate-less stops when the payload names a city."""
        if not city:
            return stops
        return fill_missing_coordinates(stops, str(city), tracker)

    @travel_bp.route("/api/config")
    def api_config():
        """Return Google Maps configuration for frontend."""
        config = get_google_maps_config()

        if config.get("api_key"):
            tracker.track("maps")
            return jsonify({
                "auth_type": "api_key",
                "google_maps_api_key": config["api_key"],
                "google_maps_client_id": config.get("client_id", ""),
                "client_secret_configured": bool(config.get("client_secret"))
            })
        else:
            return jsonify({
                "error": "No Google Maps API key configured"
            }), 500

    @travel_bp.route("/api/optimize/day", methods=["POST"])
    def api_optimize_day():
        """Reorder one day's activities for the shortest route."""
        data = json_body()
        stops = Stop.list_from_dicts(data.get("stops"))
        origin = Origin.from_dict(data.get("origin"))
        stops = with_coordinates(stops, data.get("city"))

        if not RouteService.has_routable_stops(stops):
            return jsonify({"error": NOTHING_TO_OPTIMIZE}), 400

        route = RouteService.plan_day(stops, origin, data.get("day_number"))
        return jsonify(route.to_dict())

    @travel_bp.route("/api/optimize/trip", methods=["POST"])
    def api_optimize_trip():
        """Reorder every day of a trip with a shared lodging origin."""
        data = json_body()
        days = DayPlan.list_from_dicts(data.get("days"))
        origin = Origin.from_dict(data.get("origin"))
        days = [DayPlan(day.day_number, with_coordinates(day.stops, data.get("city")))
                for day in days]

        if not any(RouteService.has_routable_stops(day.stops) for day in days):
            return jsonify({"error": NOTHING_TO_OPTIMIZE}), 400

        trip = RouteService.plan_trip(days, origin)
        return jsonify(trip.to_dict())

    @travel_bp.route("/api/origin", methods=["POST"])
    def api_origin():
        """Resolve a hotel name or address to a route origin."""
        data = json_body()
        origin = geocode_origin(data.get("query", ""), tracker)

        if origin is None:
            return jsonify({"error": "Location not found"}), 404
        return jsonify(origin.to_dict())

    @travel_bp.route("/api/usage")
    def api_usage():
        """Return this month's Maps API usage summary."""
        summary = tracker.summary()
        return jsonify({
            **summary.to_dict(),
            "free_tier_limit": tracker.free_tier_limit,
        })

    @travel_bp.route("/health")
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok", "service": "travel"})

    return travel_bp


__all__ = ['create_travel_blueprint']
