# itinero_travel/api/config.py
"""Configuration management for the route optimization API."""
import os
from dotenv import load_dotenv

load_dotenv()


def get_google_maps_config():
    """Get Google Maps configuration."""
    return {
        "api_key": os.getenv("GOOGLE_MAPS_API_KEY", ""),
        "client_id": os.getenv("maps_client_id", ""),
        "client_secret": os.getenv("maps_client_secret", "")
    }


def get_port():
    """Get port configuration."""
    return int(os.getenv("PORT", 5000))


def get_optimizer_config():
    """Get route optimizer configuration.

    The iteration and time limits bound the 2-opt refinement loop; when either
    is exhausted the best tour found so far is returned.
    """
    return {
        "max_iterations": int(os.getenv("OPTIMIZER_MAX_ITERATIONS", "1000")),
        "time_limit": float(os.getenv("OPTIMIZER_TIME_LIMIT_SECONDS", "2.0")),
        "epsilon": float(os.getenv("OPTIMIZER_EPSILON", "1e-9")),
        "max_workers": int(os.getenv("OPTIMIZER_MAX_WORKERS", "1")),
    }


def get_usage_config():
    """Get Maps API usage tracking configuration."""
    return {
        "free_tier_limit": float(os.getenv("MAPS_FREE_TIER_LIMIT", "200")),
        "warning_percent": float(os.getenv("USAGE_WARNING_PERCENT", "75")),
        "danger_percent": float(os.getenv("USAGE_DANGER_PERCENT", "90")),
        # Empty path keeps usage in memory for the process lifetime
        "store_path": os.getenv("USAGE_STORE_PATH", ""),
        # USD per 1,000 requests / elements
        "costs": {
            "maps": 7.0,
            "places": 17.0,
            "distance_matrix": 5.0,
            "geocoding": 5.0,
        },
    }


def get_websocket_config():
    """Get WebSocket configuration."""
    return {
        "ping_interval": int(os.getenv("WEBSOCKET_PING_INTERVAL", "25")),
        "ping_timeout": int(os.getenv("WEBSOCKET_PING_TIMEOUT", "60")),
        "cors_allowed_origins": os.getenv("WEBSOCKET_CORS_ORIGINS", "*").split(",")
    }


def validate_optimizer_config(config=None):
    """Validate optimizer configuration is usable."""
    config = config or get_optimizer_config()

    if config["max_iterations"] < 1:
        raise ValueError("OPTIMIZER_MAX_ITERATIONS must be at least 1")

    if config["time_limit"] <= 0:
        raise ValueError("OPTIMIZER_TIME_LIMIT_SECONDS must be positive")

    if config["epsilon"] < 0:
        raise ValueError("OPTIMIZER_EPSILON must not be negative")

    if config["max_workers"] < 1:
        raise ValueError("OPTIMIZER_MAX_WORKERS must be at least 1")

    return True
