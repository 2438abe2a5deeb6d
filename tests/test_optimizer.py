import itertools
import logging
import random

import pytest

from itinero_travel.api.optimizer import (
    DistanceMatrix,
    build_distance_matrix,
    nearest_neighbor_tour,
    solve_tour,
    tour_distance,
    two_opt,
)

TOKYO = [(35.68, 139.65), (35.70, 139.77), (35.66, 139.70), (35.71, 139.70)]


def random_points(seed, n):
    rng = random.Random(seed)
    return [(rng.uniform(35.5, 35.9), rng.uniform(139.5, 139.9)) for _ in range(n)]


def best_closed_tour(matrix):
    n = len(matrix)
    return min(
        tour_distance([0, *perm, 0], matrix)
        for perm in itertools.permutations(range(1, n))
    )


def assert_valid_tour(tour, n):
    assert tour[0] == 0
    assert tour[-1] == 0
    assert len(tour) == n + 1
    assert sorted(tour[:-1]) == list(range(n))


def test_matrix_is_square_symmetric_with_zero_diagonal():
    matrix = build_distance_matrix(TOKYO)

    assert len(matrix) == 4
    assert matrix.symmetric
    for i in range(4):
        assert matrix[i][i] == 0.0
        for j in range(4):
            assert matrix[i][j] == matrix[j][i]
            assert matrix[i][j] >= 0


def test_nearest_neighbor_visits_every_node_once():
    matrix = build_distance_matrix(random_points(1, 9))
    assert_valid_tour(nearest_neighbor_tour(matrix), 9)


def test_nearest_neighbor_breaks_ties_by_lowest_index():
    matrix = DistanceMatrix(values=[
        [0, 5, 1, 1],
        [5, 0, 2, 2],
        [1, 2, 0, 3],
        [1, 2, 3, 0],
    ])
    assert nearest_neighbor_tour(matrix) == [0, 2, 1, 3, 0]


def test_nearest_neighbor_on_tokyo():
    matrix = build_distance_matrix(TOKYO)
    # A -> C (closest) -> D -> B -> A
    assert nearest_neighbor_tour(matrix) == [0, 2, 3, 1, 0]


def test_tokyo_square_reaches_exhaustive_optimum():
    result = solve_tour(TOKYO)
    matrix = build_distance_matrix(TOKYO)

    assert result.tour == [0, 2, 1, 3, 0]
    assert result.converged
    assert result.distance == pytest.approx(best_closed_tour(matrix))
    assert result.distance < result.initial_distance


@pytest.mark.parametrize("seed", range(8))
def test_refinement_never_worsens_the_initial_tour(seed):
    points = random_points(seed, 12)
    result = solve_tour(points)

    assert_valid_tour(result.tour, 12)
    assert result.distance <= result.initial_distance + 1e-9


@pytest.mark.parametrize("seed", range(5))
def test_small_instances_match_brute_force_within_heuristic_gap(seed):
    points = random_points(100 + seed, 7)
    matrix = build_distance_matrix(points)
    result = solve_tour(points)

    optimum = best_closed_tour(matrix)
    assert optimum - 1e-9 <= result.distance <= optimum * 1.25


def test_two_opt_keeps_endpoints_pinned():
    points = random_points(42, 10)
    matrix = build_distance_matrix(points)
    initial = [0, 9, 1, 8, 2, 7, 3, 6, 4, 5, 0]

    tour, sweeps, converged = two_opt(initial, matrix)

    assert converged
    assert sweeps >= 1
    assert_valid_tour(tour, 10)
    assert tour_distance(tour, matrix) < tour_distance(initial, matrix)


def test_two_opt_does_not_mutate_its_input():
    matrix = build_distance_matrix(random_points(3, 6))
    initial = [0, 5, 1, 4, 2, 3, 0]
    snapshot = list(initial)

    two_opt(initial, matrix)

    assert initial == snapshot


def test_iteration_budget_returns_best_so_far():
    points = random_points(7, 15)
    matrix = build_distance_matrix(points)
    initial = list(range(15)) + [0]

    tour, sweeps, converged = two_opt(initial, matrix, max_iterations=1)

    assert sweeps == 1
    assert not converged
    assert_valid_tour(tour, 15)
    assert tour_distance(tour, matrix) < tour_distance(initial, matrix)


def test_time_budget_stops_the_search():
    matrix = build_distance_matrix(random_points(9, 10))
    initial = list(range(10)) + [0]
    ticks = iter(range(1000))

    tour, sweeps, converged = two_opt(
        initial, matrix, time_limit=0.5, clock=lambda: next(ticks)
    )

    assert not converged
    assert tour == initial
    assert sweeps == 0


def test_solve_tour_reports_budget_cut_off():
    result = solve_tour(random_points(11, 12), max_iterations=1)

    assert result.iterations == 1
    assert_valid_tour(result.tour, 12)


def test_directed_costs_reprice_reversed_segment():
    # Reversing [1, 2] saves 8 on the boundary edges but 2 -> 1 costs 100
    # against 1 for 1 -> 2, so the move makes the tour longer.
    matrix = DistanceMatrix(values=[
        [0, 5, 1, 10],
        [10, 0, 1, 1],
        [10, 100, 0, 5],
        [1, 10, 50, 0],
    ], symmetric=False)

    tour, _, converged = two_opt([0, 1, 2, 3, 0], matrix)

    assert converged
    assert tour == [0, 1, 2, 3, 0]
    assert tour_distance(tour, matrix) == 12


def test_solving_is_deterministic():
    points = random_points(5, 11)
    assert solve_tour(points).tour == solve_tour(points).tour


@pytest.mark.parametrize("points,expected", [([], []), ([(35.0, 139.0)], [0])])
def test_trivial_instances(points, expected):
    result = solve_tour(points)
    assert result.tour == expected
    assert result.distance == 0.0


def test_budget_cut_off_is_logged_with_best_distance(monkeypatch, caplog):
    from itinero_travel.api import optimizer

    def cut_off(tour, matrix, **kwargs):
        return list(tour), 1, False

    monkeypatch.setattr(optimizer, "two_opt", cut_off)
    with caplog.at_level(logging.DEBUG, logger="itinero_travel.api.optimizer"):
        result = solve_tour(TOKYO)

    assert not result.converged
    messages = [r.getMessage() for r in caplog.records]
    assert any(
        "budget exhausted after 1 sweeps on 4 nodes" in m and f"({result.distance:.2f} km)" in m
        for m in messages
    )
    assert any(m.startswith("Solved tour over 4 nodes") for m in messages)
