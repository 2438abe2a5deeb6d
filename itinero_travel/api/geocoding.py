# itinero_travel/api/geocoding.py
from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Dict, List, Optional

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError

from itinero_travel.api.config import get_google_maps_config
from itinero_travel.api.models import Origin, Stop

logger = logging.getLogger(__name__)

_gmaps: googlemaps.Client | None = None
_geocoding_cache: Dict[str, Dict[str, Any]] = {}


def _get_client() -> googlemaps.Client | None:
    """Return a cached googlemaps.Client instance."""
    global _gmaps
    if _gmaps is None:
        api_key = get_google_maps_config().get("api_key", "")
        if not api_key:
            logger.error("No Google Maps API key found in config")
            return None
        try:
            logger.info(f"Initializing Google Maps client with key: {api_key[:10]}...")
            _gmaps = googlemaps.Client(key=api_key)
        except ValueError as e:
            logger.error(f"Failed to initialize Google Maps client: {e}")
            return None
    return _gmaps


def clear_cache() -> None:
    _geocoding_cache.clear()


def geocode(query: str, tracker=None) -> Dict[str, Any] | None:
    """Return the best geocoding result for ``query`` or None.

    Results are cached per query. Only requests that reach the API are
    recorded on ``tracker``.
    """
    if query in _geocoding_cache:
        return _geocoding_cache[query]

    client = _get_client()
    if client is None:
        logger.error("No Google Maps client available")
        return None

    try:
        logger.debug(f"Geocoding place: {query}")
        results = client.geocode(query, language="en")
    except (ApiError, TransportError, Timeout) as e:
        logger.error(f"Geocoding error for '{query}': {e}")
        return None
    finally:
        if tracker is not None:
            tracker.track("geocoding")

    if not results:
        logger.warning(f"No results found for place: {query}")
        return None

    _geocoding_cache[query] = results[0]
    return results[0]


def get_coordinates_for_place(place: str, tracker=None) -> tuple[float, float] | None:
    """Resolve a free-text place name to (lat, lng) or None if not found."""
    result = geocode(place, tracker)
    if result is None:
        return None

    loc = result["geometry"]["location"]
    logger.debug(f"Geocoded {place} to {loc['lat']}, {loc['lng']}")
    return loc["lat"], loc["lng"]


def geocode_origin(query: str, tracker=None) -> Optional[Origin]:
    """Look up a lodging by name or address and return it as a route origin."""
    if not query or not query.strip():
        raise ValueError("Origin query must not be empty")

    result = geocode(query.strip(), tracker)
    if result is None:
        return None

    loc = result["geometry"]["location"]
    address = result.get("formatted_address")
    return Origin(
        lat=loc["lat"],
        lng=loc["lng"],
        name=query.strip(),
        address=address,
        place_id=result.get("place_id"),
    )


def fill_missing_coordinates(stops: List[Stop], city: str = "", tracker=None) -> List[Stop]:
    """
    Return the stops with coordinates attached where they were missing.

    * Stops that already carry coordinates are passed through as-is.
    * A stop that gains coordinates is returned as a copy; the caller's
      objects are never mutated.
    * Failed look-ups are logged and the stop stays coordinate-less, so it is
      simply left out of route optimization.
    """
    start_time = time.time()
    filled: List[Stop] = []
    geocoded = 0
    missing = 0

    for stop in stops:
        if stop.has_coordinates:
            filled.append(stop)
            continue

        missing += 1
        place = stop.address or stop.name
        if not place:
            filled.append(stop)
            continue

        # Add city context for better results
        query = f"{place}, {city}" if city else place
        coords = get_coordinates_for_place(query, tracker)
        if coords:
            lat, lng = coords
            filled.append(dataclasses.replace(stop, lat=lat, lng=lng))
            geocoded += 1
        else:
            logger.warning(f"Failed to geocode '{query}'")
            filled.append(stop)

    if missing:
        duration = time.time() - start_time
        logger.info(f"Geocoded {geocoded}/{missing} stops in {duration:.2f}s")

    return filled


# Re-export for clean imports elsewhere
__all__ = [
    "geocode",
    "get_coordinates_for_place",
    "geocode_origin",
    "fill_missing_coordinates",
    "clear_cache",
]
