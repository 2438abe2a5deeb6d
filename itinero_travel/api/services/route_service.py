# itinero_travel/api/services/route_service.py
"""Service layer for ordering a trip's activities by travel distance."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from itinero_travel.api.config import get_optimizer_config
from itinero_travel.api.geo import validate_coordinates
from itinero_travel.api.models import DayPlan, Itinerary, Origin, Stop
from itinero_travel.api.optimizer import TourResult, solve_tour

logger = logging.getLogger(__name__)

NOTHING_TO_OPTIMIZE = "No activities with location data to optimize"


class InvalidCoordinatesError(ValueError):
    """Raised when a stop or origin carries unusable coordinates."""


@dataclass
class DayRoute:
    """Outcome of optimizing one day."""

    day_number: Optional[int]
    stops: List[Stop]
    distance_km: float = 0.0
    initial_distance_km: float = 0.0
    converged: bool = True
    optimized: bool = False

    def to_dict(self) -> dict:
        return {
            "day_number": self.day_number,
            "stops": [stop.to_dict() for stop in self.stops],
            "distance_km": round(self.distance_km, 3),
            "initial_distance_km": round(self.initial_distance_km, 3),
            "converged": self.converged,
            "optimized": self.optimized,
        }


@dataclass
class TripRoute:
    """Outcome of optimizing every day of a trip."""

    days: Dict[int, DayRoute] = field(default_factory=dict)

    def stops_by_day(self) -> Dict[int, List[Stop]]:
        return {number: route.stops for number, route in self.days.items()}

    @property
    def distance_km(self) -> float:
        return sum(route.distance_km for route in self.days.values())

    def to_dict(self) -> dict:
        return {
            "days": {str(number): route.to_dict() for number, route in self.days.items()},
            "distance_km": round(self.distance_km, 3),
        }


DaysInput = Union[Mapping[int, Sequence[Stop]], Itinerary]


class RouteService:
    """Orders activities so each day's route is as short as practical."""

    @staticmethod
    def routable_stops(stops: Sequence[Stop]) -> List[Stop]:
        """Return the stops that carry coordinates.

        Raises:
            InvalidCoordinatesError: If a stop's coordinates are present but
                not finite or out of range.
        """
        routable = []
        for stop in stops:
            if not stop.has_coordinates:
                continue
            if not validate_coordinates(stop.lat, stop.lng):
                raise InvalidCoordinatesError(
                    f"Stop '{stop.name}' ({stop.id}) has invalid coordinates: "
                    f"{stop.lat}, {stop.lng}"
                )
            routable.append(stop)
        return routable

    @staticmethod
    def has_routable_stops(stops: Sequence[Stop]) -> bool:
        return any(stop.has_coordinates for stop in stops)

    @staticmethod
    def plan_day(stops: Sequence[Stop],
                 origin: Optional[Origin] = None,
                 day_number: Optional[int] = None,
                 config: Optional[dict] = None) -> DayRoute:
        """Optimize one day and report the distances involved.

        Stops without coordinates are not routed; they follow the routed
        stops in their original relative order.

        Args:
            stops: The day's activities
            origin: Optional lodging that starts and ends the route
            day_number: Day label used in logs and in the result
            config: Optimizer budget overrides, defaults from the environment

        Returns:
            DayRoute with the same Stop objects in visiting order
        """
        config = config or get_optimizer_config()

        if origin is not None and not validate_coordinates(origin.lat, origin.lng):
            raise InvalidCoordinatesError(
                f"Origin '{origin.name}' has invalid coordinates: {origin.lat}, {origin.lng}"
            )

        routable = RouteService.routable_stops(stops)
        if len(routable) < 2:
            return DayRoute(day_number=day_number, stops=list(stops))

        by_id: Dict[str, Stop] = {}
        for stop in routable:
            if stop.id in by_id:
                raise ValueError(f"Duplicate stop id '{stop.id}' on day {day_number}")
            by_id[stop.id] = stop

        # Node keys: None marks the origin, otherwise the stop id
        node_keys: List[Optional[str]] = []
        points = []
        if origin is not None:
            node_keys.append(None)
            points.append((origin.lat, origin.lng))
        for stop in routable:
            node_keys.append(stop.id)
            points.append((stop.lat, stop.lng))

        result: TourResult = solve_tour(
            points,
            max_iterations=config.get("max_iterations"),
            time_limit=config.get("time_limit"),
            epsilon=config.get("epsilon", 1e-9),
        )

        # The closing node repeats the start; drop it, then drop the origin
        ordered_ids = [node_keys[idx] for idx in result.tour[:-1]]
        ordered = [by_id[key] for key in ordered_ids if key is not None]

        unrouted = [stop for stop in stops if not stop.has_coordinates]

        logger.info(
            f"Day {day_number}: ordered {len(ordered)} stops, "
            f"{result.initial_distance:.2f} km -> {result.distance:.2f} km"
            + (" (from origin)" if origin is not None else "")
        )

        return DayRoute(
            day_number=day_number,
            stops=ordered + unrouted,
            distance_km=result.distance,
            initial_distance_km=result.initial_distance,
            converged=result.converged,
            optimized=True,
        )

    @staticmethod
    def optimize_day(stops: Sequence[Stop],
                     origin: Optional[Origin] = None,
                     config: Optional[dict] = None) -> List[Stop]:
        """Return ``stops`` in the order that keeps travel distance short.

        The origin is never part of the returned list. With fewer than two
        coordinate-bearing stops the input order is returned unchanged.
        """
        return RouteService.plan_day(stops, origin, config=config).stops

    @staticmethod
    def _normalise_days(days: DaysInput) -> List[DayPlan]:
        if isinstance(days, Mapping):
            return [DayPlan(day_number=number, stops=list(stops))
                    for number, stops in days.items()]

        plans = list(days)
        numbers = [plan.day_number for plan in plans]
        if len(set(numbers)) != len(numbers):
            raise ValueError("Each day of a trip must have a distinct day_number")
        return plans

    @staticmethod
    def plan_trip(days: DaysInput,
                  origin: Optional[Origin] = None,
                  max_workers: Optional[int] = None,
                  config: Optional[dict] = None,
                  on_day_complete: Optional[Callable[[DayRoute, int, int], None]] = None
                  ) -> TripRoute:
        """Optimize every day of a trip independently with the same origin.

        Args:
            days: Mapping of day number to stops, or a list of DayPlan
            origin: Optional lodging shared by all days
            max_workers: Worker threads; 1 runs days sequentially
            config: Optimizer budget overrides
            on_day_complete: Called with (route, completed, total) as each
                day finishes, in completion order

        Returns:
            TripRoute keyed by day number, in input day order
        """
        config = config or get_optimizer_config()
        plans = RouteService._normalise_days(days)
        workers = max_workers or config.get("max_workers", 1)
        total = len(plans)

        def run(plan: DayPlan) -> DayRoute:
            if not RouteService.has_routable_stops(plan.stops):
                return DayRoute(day_number=plan.day_number, stops=list(plan.stops))
            return RouteService.plan_day(plan.stops, origin, plan.day_number, config)

        finished: Dict[int, DayRoute] = {}

        def collect(route: DayRoute) -> None:
            finished[route.day_number] = route
            if on_day_complete is not None:
                on_day_complete(route, len(finished), total)

        if workers > 1 and total > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(run, plan) for plan in plans]
                for future in as_completed(futures):
                    collect(future.result())
        else:
            for plan in plans:
                collect(run(plan))

        routes = {plan.day_number: finished[plan.day_number] for plan in plans}
        trip = TripRoute(days=routes)
        logger.info(f"Optimized {len(routes)} days, total {trip.distance_km:.2f} km")
        return trip

    @staticmethod
    def optimize_trip(days: DaysInput,
                      origin: Optional[Origin] = None,
                      max_workers: Optional[int] = None,
                      config: Optional[dict] = None) -> Dict[int, List[Stop]]:
        """Return a mapping of day number to that day's optimized stops."""
        return RouteService.plan_trip(days, origin, max_workers, config).stops_by_day()


# Export for use in other modules
__all__ = [
    'RouteService',
    'DayRoute',
    'TripRoute',
    'InvalidCoordinatesError',
    'NOTHING_TO_OPTIMIZE',
]
