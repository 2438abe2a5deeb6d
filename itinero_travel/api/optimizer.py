# itinero_travel/api/optimizer.py
"""Small-instance TSP solver for ordering a day's stops.

A tour is a list of node indices that starts and ends at node 0:
``[0, 3, 1, 2, 0]``. Node 0 is the lodging origin when one is supplied,
otherwise the first stop of the day. It is pinned at both ends; only the
interior of the tour is ever reordered.

The solver builds a nearest-neighbor tour and refines it with best-improvement
2-opt until no reversal shortens it, or until its iteration / wall-clock budget
runs out, in which case the best tour so far is returned.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from itinero_travel.api.geo import haversine_km

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]

DEFAULT_EPSILON = 1e-9


@dataclass(frozen=True)
class DistanceMatrix:
    """Pairwise travel cost between nodes, in km.

    ``symmetric`` is True for straight-line distances. A directed cost source
    (road routing, transit times) must set it to False so 2-opt re-prices the
    reversed segment instead of assuming it costs the same both ways.
    """

    values: List[List[float]]
    symmetric: bool = True

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, i: int) -> List[float]:
        return self.values[i]


@dataclass(frozen=True)
class TourResult:
    tour: List[int]
    distance: float
    initial_distance: float
    iterations: int = 0
    converged: bool = True


def build_distance_matrix(points: Sequence[LatLng]) -> DistanceMatrix:
    """Return the Haversine distance matrix for ``points``.

    Each unordered pair is evaluated once and mirrored, and the diagonal is
    exactly 0.
    """
    n = len(points)
    values = [[0.0] * n for _ in range(n)]

    for i in range(n):
        lat1, lng1 = points[i]
        for j in range(i + 1, n):
            lat2, lng2 = points[j]
            d = haversine_km(lat1, lng1, lat2, lng2)
            values[i][j] = d
            values[j][i] = d

    return DistanceMatrix(values=values, symmetric=True)


def tour_distance(tour: Sequence[int], matrix: DistanceMatrix) -> float:
    """Sum of the edge costs along ``tour``."""
    total = 0.0
    for a, b in zip(tour[:-1], tour[1:]):
        total += matrix[a][b]
    return total


def nearest_neighbor_tour(matrix: DistanceMatrix, start: int = 0) -> List[int]:
    """Greedy tour that always steps to the closest unvisited node.

    Ties go to the lowest index. The start node is appended again to close
    the loop.
    """
    n = len(matrix)
    if n == 0:
        return []

    visited = [False] * n
    visited[start] = True
    tour = [start]
    current = start

    for _ in range(n - 1):
        nearest = -1
        best = float("inf")
        for j in range(n):
            if not visited[j] and matrix[current][j] < best:
                best = matrix[current][j]
                nearest = j

        if nearest == -1:
            break

        tour.append(nearest)
        visited[nearest] = True
        current = nearest

    tour.append(start)
    return tour


def _reversal_delta(tour: Sequence[int], i: int, j: int, matrix: DistanceMatrix) -> float:
    """Change in tour cost from reversing ``tour[i..j]`` (inclusive)."""
    prev, first = tour[i - 1], tour[i]
    last, nxt = tour[j], tour[j + 1]

    delta = (matrix[prev][last] + matrix[first][nxt]
             - matrix[prev][first] - matrix[last][nxt])

    if not matrix.symmetric:
        for k in range(i, j):
            a, b = tour[k], tour[k + 1]
            delta += matrix[b][a] - matrix[a][b]

    return delta


def two_opt(
    tour: Sequence[int],
    matrix: DistanceMatrix,
    *,
    max_iterations: Optional[int] = None,
    time_limit: Optional[float] = None,
    epsilon: float = DEFAULT_EPSILON,
    clock: Callable[[], float] = time.monotonic,
) -> Tuple[List[int], int, bool]:
    """Refine ``tour`` with best-improvement 2-opt.

    Args:
        tour: Closed tour starting and ending at the pinned node.
        matrix: Cost matrix the tour indexes into.
        max_iterations: Maximum number of sweeps, ``None`` for no limit.
        time_limit: Wall-clock budget in seconds, ``None`` for no limit.
        epsilon: Improvements at or below this are treated as no improvement.
        clock: Monotonic time source.

    Returns:
        ``(tour, sweeps, converged)``. ``converged`` is False when the budget
        cut the search off before a local optimum was confirmed.
    """
    best = list(tour)
    length = len(best)
    deadline = clock() + time_limit if time_limit is not None else None
    sweeps = 0

    # Fewer than two interior nodes: nothing can be reordered
    if length < 4:
        return best, sweeps, True

    while True:
        if max_iterations is not None and sweeps >= max_iterations:
            return best, sweeps, False
        if deadline is not None and clock() >= deadline:
            return best, sweeps, False

        sweeps += 1
        best_delta = -epsilon
        best_move = None
        timed_out = False

        for i in range(1, length - 2):
            if deadline is not None and clock() >= deadline:
                timed_out = True
                break
            for j in range(i + 1, length - 1):
                delta = _reversal_delta(best, i, j, matrix)
                if delta < best_delta:
                    best_delta = delta
                    best_move = (i, j)

        if best_move is not None:
            i, j = best_move
            best[i:j + 1] = reversed(best[i:j + 1])

        if timed_out:
            return best, sweeps, False
        if best_move is None:
            return best, sweeps, True


def solve_tour(
    points: Sequence[LatLng],
    *,
    max_iterations: Optional[int] = None,
    time_limit: Optional[float] = None,
    epsilon: float = DEFAULT_EPSILON,
) -> TourResult:
    """Order ``points`` into a short closed tour pinned at ``points[0]``."""
    n = len(points)
    if n < 2:
        return TourResult(tour=list(range(n)), distance=0.0, initial_distance=0.0)

    matrix = build_distance_matrix(points)
    initial = nearest_neighbor_tour(matrix, 0)
    initial_distance = tour_distance(initial, matrix)

    tour, sweeps, converged = two_opt(
        initial,
        matrix,
        max_iterations=max_iterations,
        time_limit=time_limit,
        epsilon=epsilon,
    )
    distance = tour_distance(tour, matrix)

    if not converged:
        logger.warning(
            f"2-opt budget exhausted after {sweeps} sweeps on {n} nodes; "
            f"returning best tour so far ({distance:.2f} km)"
        )

    logger.debug(
        f"Solved tour over {n} nodes: {distance:.2f} km "
        f"(nearest neighbor {initial_distance:.2f} km, {sweeps} sweeps)"
    )

    return TourResult(
        tour=tour,
        distance=distance,
        initial_distance=initial_distance,
        iterations=sweeps,
        converged=converged,
    )


__all__ = [
    "DistanceMatrix",
    "TourResult",
    "build_distance_matrix",
    "tour_distance",
    "nearest_neighbor_tour",
    "two_opt",
    "solve_tour",
]
