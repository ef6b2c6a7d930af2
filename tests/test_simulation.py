import math
import numpy as np
import pytest

from boids import BoidParams, FlockState, Simulation, SpatialGrid


LOWER = (-500.0, -500.0, -500.0)
UPPER = (500.0, 500.0, 500.0)
CELL = (75.0, 75.0, 75.0)


def make_sim(positions, directions, params: BoidParams = None, capacity: int = 8, count: int = None) -> Simulation:
    positions = np.asarray(positions, dtype=np.float64)
    directions = np.asarray(directions, dtype=np.float64)
    grid = SpatialGrid(LOWER, UPPER, CELL, capacity=capacity)
    flock = FlockState(count if count is not None else len(positions))
    flock.positions[:len(positions)] = positions
    flock.directions[:len(directions)] = directions
    return Simulation(grid, flock, params)


def test_separation_pushes_pair_apart():
    params = BoidParams(alignment_strength=0.0, cohesion_strength=0.0,
                        separation_radius=25.0, separation_strength=4.0)
    sim = make_sim(
        [[10.0, 10.0, 10.0], [20.0, 10.0, 10.0]],
        [[0.0, 1.0, 0.0], [0.0, 1.0, 0.0]],
        params,
    )
    sim.index(2)
    assert sim.flock.cells[0] == sim.flock.cells[1]

    sim.interact(2)

    # Heading (0, 1, 0) plus 4 units away from the other boid, then normalized
    norm = math.sqrt(17.0)
    assert np.allclose(sim.flock.directions[0], [-4.0 / norm, 1.0 / norm, 0.0])
    assert np.allclose(sim.flock.directions[1], [4.0 / norm, 1.0 / norm, 0.0])


def test_all_rules_accumulate_in_id_order():
    sim = make_sim(
        [[10.0, 10.0, 10.0], [20.0, 10.0, 10.0]],
        [[0.0, 1.0, 0.0], [0.0, 1.0, 0.0]],
        BoidParams(),
    )
    sim.index(2)
    sim.interact(2)

    # Boid 0: heading + 4 * away + 6 * neighbour heading - 1 * away
    expected_0 = np.array([-3.0, 7.0, 0.0]) / math.sqrt(58.0)
    assert np.allclose(sim.flock.directions[0], expected_0)

    # Boid 1 sees boid 0's updated heading
    h1 = np.array([0.0, 1.0, 0.0]) + 4.0 * np.array([1.0, 0.0, 0.0]) \
        + 6.0 * expected_0 - 1.0 * np.array([1.0, 0.0, 0.0])
    assert np.allclose(sim.flock.directions[1], h1 / np.linalg.norm(h1))


def test_rules_are_hard_cutoffs():
    params = BoidParams(separation_radius=5.0, alignment_radius=50.0, cohesion_radius=8.0)
    sim = make_sim(
        [[10.0, 10.0, 10.0], [20.0, 10.0, 10.0]],
        [[0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        params,
    )
    sim.index(2)
    sim.interact(2)

    # Only alignment is within range at distance 10
    expected_0 = np.array([0.0, 1.0, 6.0]) / math.sqrt(37.0)
    assert np.allclose(sim.flock.directions[0], expected_0)


def test_neighbours_in_other_cells_are_ignored():
    # 2 units apart but on either side of a cell face
    sim = make_sim(
        [[-426.0, 0.0, 0.0], [-424.0, 0.0, 0.0], [400.0, 400.0, 400.0]],
        [[0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]],
    )
    sim.index(3)
    assert len(set(sim.flock.cells[:3].tolist())) == 3

    sim.interact(3)
    assert np.allclose(sim.flock.directions[0], [0.0, 1.0, 0.0])
    assert np.allclose(sim.flock.directions[1], [0.0, 0.0, 1.0])
    assert np.allclose(sim.flock.directions[2], [1.0, 0.0, 0.0])


def test_directions_are_unit_after_interact():
    grid = SpatialGrid(LOWER, UPPER, CELL)
    flock = FlockState.random((-100.0, -100.0, -100.0), (100.0, 100.0, 100.0), 3000,
                              rng=np.random.default_rng(3))
    sim = Simulation(grid, flock)

    sim.index(3000)
    sim.interact(3000)

    norms = np.linalg.norm(sim.flock.directions, axis=1)
    assert np.all(np.isfinite(sim.flock.directions))
    assert np.allclose(norms, 1.0)


def test_coincident_boids_stay_finite():
    params = BoidParams(alignment_strength=0.0)
    sim = make_sim(
        [[5.0, 5.0, 5.0], [5.0, 5.0, 5.0]],
        [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
        params,
    )
    sim.index(2)
    sim.interact(2)

    assert np.all(np.isfinite(sim.flock.directions[:2]))
    assert np.allclose(sim.flock.directions[0], [1.0, 0.0, 0.0])
    assert np.allclose(sim.flock.directions[1], [0.0, 1.0, 0.0])


def test_zero_net_heading_keeps_previous():
    params = BoidParams(separation_strength=0.0, cohesion_strength=0.0, alignment_strength=1.0)
    sim = make_sim(
        [[5.0, 5.0, 5.0], [6.0, 5.0, 5.0]],
        [[1.0, 0.0, 0.0], [-1.0, 0.0, 0.0]],
        params,
    )
    sim.index(2)
    sim.interact(2)

    assert np.all(np.isfinite(sim.flock.directions[:2]))
    assert np.allclose(sim.flock.directions[0], [1.0, 0.0, 0.0])
    assert np.allclose(sim.flock.directions[1], [-1.0, 0.0, 0.0])


def test_move_wraps_past_upper_face():
    sim = make_sim([[499.0, 0.0, 0.0]], [[1.0, 0.0, 0.0]], BoidParams(speed=100.0))
    sim.move(1, 1.0)
    assert np.allclose(sim.flock.positions[0], [-401.0, 0.0, 0.0])


def test_move_wraps_past_lower_face():
    sim = make_sim([[0.0, -499.0, 0.0]], [[0.0, -1.0, 0.0]], BoidParams(speed=100.0))
    sim.move(1, 1.0)
    assert np.allclose(sim.flock.positions[0], [0.0, 401.0, 0.0])


@pytest.mark.parametrize("axis", [0, 1, 2])
def test_moving_one_extent_returns_to_start(axis):
    start = np.array([123.5, -42.0, 7.25])
    heading = np.zeros(3)
    heading[axis] = 1.0
    sim = make_sim([start], [heading], BoidParams(speed=1000.0))

    sim.move(1, 1.0)
    assert np.allclose(sim.flock.positions[0], start)


def test_move_scales_with_dt():
    sim = make_sim([[0.0, 0.0, 0.0]], [[0.0, 0.0, 1.0]], BoidParams(speed=60.0))
    sim.move(1, 0.5)
    assert np.allclose(sim.flock.positions[0], [0.0, 0.0, 30.0])


def test_update_indexes_before_moving():
    sim = Simulation.create(LOWER, UPPER, CELL, 8, 500, seed=11)
    before = sim.flock.positions.copy()

    sim.update_boids(500, 0.016)

    expected = [sim.grid.cell_of(p) for p in before]
    assert sim.flock.cells.tolist() == expected
    assert not np.allclose(sim.flock.positions, before)
    assert sim.frame == 1


def test_only_active_prefix_changes():
    sim = Simulation.create(LOWER, UPPER, CELL, 8, 400, seed=5)
    positions = sim.flock.positions.copy()
    directions = sim.flock.directions.copy()

    sim.update_boids(100, 0.016)

    assert np.array_equal(sim.flock.positions[100:], positions[100:])
    assert np.array_equal(sim.flock.directions[100:], directions[100:])
    assert not np.array_equal(sim.flock.positions[:100], positions[:100])


def test_positions_stay_in_domain():
    sim = Simulation.create(LOWER, UPPER, CELL, 8, 2000, seed=2)
    for _ in range(20):
        sim.update_boids(2000, 0.05)

    positions = sim.positions(2000)
    assert np.all(positions >= np.array(LOWER))
    assert np.all(positions <= np.array(UPPER))
    assert np.allclose(np.linalg.norm(sim.directions(2000), axis=1), 1.0)


def test_overflow_excludes_boid_from_neighbour_lists():
    sim = make_sim(
        [[0.0, 0.0, 0.0]] * 9,
        [[1.0, 0.0, 0.0]] * 9,
    )
    dropped = sim.index(9)

    cell = sim.flock.cells[8]
    assert dropped == 1
    assert sim.grid.dropped == 1
    assert sim.grid.counts[cell] == 8
    assert 8 not in sim.grid.occupants(cell).tolist()
    assert np.all(sim.flock.cells[:9] == cell)


def test_active_count_is_checked():
    sim = Simulation.create(LOWER, UPPER, CELL, 8, 10, seed=0)
    with pytest.raises(ValueError):
        sim.update_boids(11, 0.016)
    with pytest.raises(ValueError):
        sim.index(-1)
    with pytest.raises(ValueError):
        sim.positions(11)

    positions = sim.flock.positions.copy()
    sim.update_boids(0, 0.016)
    assert np.array_equal(sim.flock.positions, positions)
    assert sim.grid.counts.sum() == 0


def test_same_seed_same_trajectory():
    a = Simulation.create(LOWER, UPPER, CELL, 8, 300, seed=9)
    b = Simulation.create(LOWER, UPPER, CELL, 8, 300, seed=9)
    for _ in range(5):
        a.update_boids(300, 0.016)
        b.update_boids(300, 0.016)

    assert np.allclose(a.flock.positions, b.flock.positions)
    assert np.allclose(a.flock.directions, b.flock.directions)
    assert a.grid.counts is not b.grid.counts


def test_from_config_and_warmup():
    sim = Simulation.from_config({"max_count": 256, "seed": 1})
    assert sim.count == 256
    assert sim.params == BoidParams.from_config()
    assert tuple(sim.grid.dims) == (14, 14, 14)

    sim.warmup()
    assert sim.frame == 0
