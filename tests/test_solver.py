import logging
import math

import numpy as np
import pytest

from parasketch import Sketch
from parasketch.constraints import (
    Coincident,
    Distance,
    Fixed,
    Horizontal,
    Length,
    Perpendicular,
    PointOnCurve,
    Radius,
    Tangent,
    Vertical,
)
from parasketch.solver import (
    ConstraintSolver,
    Failed,
    FullyConstrained,
    OverConstrained,
    SolveOptions,
    UnderConstrained,
    get_default_solve_options,
    reset_default_solve_options,
    set_default_solve_options,
)


@pytest.fixture(autouse=True)
def _restore_default_options():
    yield
    reset_default_solve_options()


def _positions(sketch):
    return np.array([sketch.point_position(p) for p in sketch.point_ids])


def _rectangle(corners):
    sketch = Sketch('rectangle')
    points = [sketch.add_point(x, y) for x, y in corners]
    lines = [sketch.add_line(points[i], points[(i + 1) % 4]) for i in range(4)]
    return sketch, points, lines


def test_empty_sketch_is_fully_constrained():
    assert ConstraintSolver().solve(Sketch()) == FullyConstrained()


@pytest.mark.parametrize('count', [1, 3, 5])
def test_unconstrained_points_report_two_dof_each(count):
    sketch = Sketch()
    for i in range(count):
        sketch.add_point(float(i), 0.0)
    before = _positions(sketch)

    result = ConstraintSolver().solve(sketch)

    assert result == UnderConstrained(dof=2 * count)
    np.testing.assert_array_equal(_positions(sketch), before)


def test_horizontal_constraint_levels_line():
    sketch = Sketch()
    line, start, end = sketch.add_line_from_coords(0.0, 0.0, 10.0, 5.0)
    sketch.add_constraint(Horizontal(line))

    result = ConstraintSolver().solve(sketch)

    assert result == UnderConstrained(dof=3)
    assert abs(sketch.point_position(start)[1] - sketch.point_position(end)[1]) < 0.01


def test_fixed_constraint_moves_point_to_target():
    sketch = Sketch()
    p = sketch.add_point(5.0, 5.0)
    sketch.add_constraint(Fixed(p, 0.0, 0.0))

    result = ConstraintSolver().solve(sketch)

    assert result == FullyConstrained()
    x, y = sketch.point_position(p)
    assert abs(x) < 0.01 and abs(y) < 0.01


def test_distance_with_fixed_anchor():
    sketch = Sketch()
    p1 = sketch.add_point(0.0, 0.0)
    p2 = sketch.add_point(5.0, 0.0)
    sketch.add_constraint(Fixed(p1, 0.0, 0.0))
    sketch.add_constraint(Distance(p1, p2, 10.0))

    result = ConstraintSolver().solve(sketch)

    assert result == UnderConstrained(dof=1)
    (x1, y1), (x2, y2) = sketch.point_position(p1), sketch.point_position(p2)
    assert abs(math.hypot(x2 - x1, y2 - y1) - 10.0) < 0.1
    assert math.hypot(x1, y1) < 0.01


def test_satisfied_sketch_does_not_move():
    sketch, points, lines = _rectangle([(0.0, 0.0), (10.0, 0.0), (10.0, 5.0), (0.0, 5.0)])
    sketch.add_constraint(Fixed(points[0], 0.0, 0.0))
    sketch.add_constraint(Horizontal(lines[0]))
    sketch.add_constraint(Vertical(lines[1]))
    sketch.add_constraint(Horizontal(lines[2]))
    sketch.add_constraint(Vertical(lines[3]))
    before = _positions(sketch)
    solver = ConstraintSolver()

    result = solver.solve(sketch)

    assert result.converged
    assert np.max(np.abs(_positions(sketch) - before)) <= solver.tolerance


def test_rectangle_with_dimensions_is_fully_constrained():
    sketch, points, lines = _rectangle([(0.3, -0.2), (9.0, 0.5), (10.5, 4.6), (-0.4, 5.3)])
    sketch.add_constraint(Fixed(points[0], 0.0, 0.0))
    sketch.add_constraint(Horizontal(lines[0]))
    sketch.add_constraint(Vertical(lines[1]))
    sketch.add_constraint(Horizontal(lines[2]))
    sketch.add_constraint(Vertical(lines[3]))
    sketch.add_constraint(Length(lines[0], 10.0))
    sketch.add_constraint(Length(lines[3], 5.0))
    assert sketch.degrees_of_freedom() == 0

    result = ConstraintSolver().solve(sketch)

    assert result == FullyConstrained()
    expected = [(0.0, 0.0), (10.0, 0.0), (10.0, 5.0), (0.0, 5.0)]
    np.testing.assert_allclose(_positions(sketch), expected, atol=0.01)


def test_line_tangent_to_circle():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    circle = sketch.add_circle(center, 2.0)
    line, start, end = sketch.add_line_from_coords(-5.0, 3.0, 5.0, 3.5)
    sketch.add_constraint(Fixed(center, 0.0, 0.0))
    sketch.add_constraint(Horizontal(line))
    sketch.add_constraint(Tangent(line, circle))

    result = ConstraintSolver().solve(sketch)

    assert result.converged
    y_start, y_end = sketch.point_position(start)[1], sketch.point_position(end)[1]
    assert abs(y_start - y_end) < 0.01
    assert abs(abs(y_start) - 2.0) < 0.01


def test_perpendicular_lines_sharing_a_corner():
    sketch = Sketch()
    l1, a, b = sketch.add_line_from_coords(0.0, 0.0, 4.0, 0.5)
    l2, c, d = sketch.add_line_from_coords(0.2, 0.1, 1.0, 3.0)
    sketch.add_constraint(Coincident(a, c))
    sketch.add_constraint(Perpendicular(l1, l2))

    result = ConstraintSolver().solve(sketch)

    assert result == UnderConstrained(dof=5)
    (ax, ay), (bx, by) = sketch.point_position(a), sketch.point_position(b)
    (cx, cy), (dx, dy) = sketch.point_position(c), sketch.point_position(d)
    assert math.hypot(ax - cx, ay - cy) < 0.01
    assert abs((bx - ax) * (dx - cx) + (by - ay) * (dy - cy)) < 0.01


def test_point_on_circle_converges():
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    circle = sketch.add_circle(center, 5.0)
    p = sketch.add_point(1.0, 1.0)
    sketch.add_constraint(Fixed(center, 0.0, 0.0))
    sketch.add_constraint(PointOnCurve(p, circle))

    result = ConstraintSolver().solve(sketch)

    assert result == UnderConstrained(dof=1)
    x, y = sketch.point_position(p)
    assert abs(math.hypot(x, y) - 5.0) < 0.01


def test_redundant_consistent_constraints_report_fully_constrained():
    sketch = Sketch()
    p = sketch.add_point(1.0, 1.0)
    sketch.add_constraint(Fixed(p, 0.0, 0.0))
    sketch.add_constraint(Fixed(p, 0.0, 0.0))
    assert sketch.degrees_of_freedom() == -2

    assert ConstraintSolver().solve(sketch) == FullyConstrained()


def test_contradictory_constraints_fail_to_converge():
    sketch = Sketch()
    p = sketch.add_point(0.0, 0.0)
    sketch.add_constraint(Fixed(p, 0.0, 0.0))
    sketch.add_constraint(Fixed(p, 10.0, 0.0))

    result = ConstraintSolver().with_max_iterations(20).solve(sketch)

    assert result == Failed(reason='Failed to converge after 20 iterations')
    assert not result.converged
    # no rollback: the sketch holds the least-squares compromise
    x, y = sketch.point_position(p)
    assert abs(x - 5.0) < 0.01 and abs(y) < 0.01


def test_default_iteration_budget_in_failure_message():
    sketch = Sketch()
    p = sketch.add_point(0.0, 0.0)
    sketch.add_constraint(Fixed(p, 0.0, 0.0))
    sketch.add_constraint(Fixed(p, 10.0, 0.0))

    result = ConstraintSolver().solve(sketch)

    assert isinstance(result, Failed)
    assert result.reason == 'Failed to converge after 200 iterations'


def test_radius_target_cannot_be_reached_by_moving_points():
    sketch = Sketch()
    circle = sketch.add_circle(sketch.add_point(0.0, 0.0), 5.0)
    sketch.add_constraint(Radius(circle, 3.0))

    result = ConstraintSolver().with_max_iterations(5).solve(sketch)

    assert result == Failed(reason='Failed to converge after 5 iterations')


def test_singular_normal_equations_fail_with_iteration_number():
    sketch = Sketch()
    line, _, _ = sketch.add_line_from_coords(0.0, 0.0, 10.0, 5.0)
    sketch.add_constraint(Horizontal(line))

    result = ConstraintSolver(SolveOptions(regularization=0.0)).solve(sketch)

    assert result == Failed(reason='Singular Jacobian at iteration 0 (possibly over-constrained)')


def test_inconsistent_residual_rows_end_as_failure():
    sketch = Sketch()
    line, _, _ = sketch.add_line_from_coords(0.0, 0.0, 1e-5, 0.0)
    circle = sketch.add_circle(sketch.add_point(0.0, 5.0), 2.0)
    sketch.add_constraint(Tangent(line, circle))

    result = ConstraintSolver().solve(sketch)

    assert isinstance(result, Failed)
    assert result.reason.startswith('Inconsistent residual rows at iteration 0')


def test_equation_count_mismatch_warns_once(caplog):
    sketch = Sketch()
    circle = sketch.add_circle(sketch.add_point(0.0, 0.0), 1.0)
    p = sketch.add_point(5.0, 5.0)
    sketch.add_constraint(Horizontal(circle))
    sketch.add_constraint(Fixed(p, 0.0, 0.0))

    with caplog.at_level(logging.WARNING, logger='parasketch.solver.solver_core'):
        result = ConstraintSolver().solve(sketch)

    assert result == UnderConstrained(dof=1)
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert 'declare 3 equation(s) but 2 residual row(s)' in warnings[0].getMessage()


def test_solve_is_deterministic():
    def build():
        sketch = Sketch()
        p1 = sketch.add_point(0.0, 0.0, entity_id='p1')
        p2 = sketch.add_point(5.0, 1.0, entity_id='p2')
        sketch.add_constraint(Fixed(p1, 0.0, 0.0, id='f'))
        sketch.add_constraint(Distance(p1, p2, 10.0, id='d'))
        return sketch

    first, second = build(), build()

    assert ConstraintSolver().solve(first) == ConstraintSolver().solve(second)
    np.testing.assert_array_equal(_positions(first), _positions(second))


def test_defaults_match_documented_values():
    solver = ConstraintSolver()

    assert solver.tolerance == 1e-4
    assert solver.max_iterations == 200
    assert solver.damping == 0.8


@pytest.mark.parametrize('requested, expected', [(5.0, 1.0), (0.01, 0.1), (0.5, 0.5), (-1.0, 0.1)])
def test_damping_is_clamped(requested, expected):
    assert ConstraintSolver().with_damping(requested).damping == expected
    assert ConstraintSolver(SolveOptions(damping=requested)).damping == expected


def test_builder_methods_return_new_solvers():
    base = ConstraintSolver()
    tuned = base.with_tolerance(1e-6).with_max_iterations(50).with_damping(1.0)

    assert (tuned.tolerance, tuned.max_iterations, tuned.damping) == (1e-6, 50, 1.0)
    assert (base.tolerance, base.max_iterations, base.damping) == (1e-4, 200, 0.8)
    assert tuned is not base


@pytest.mark.parametrize(
    'options',
    [
        SolveOptions(tolerance=0.0),
        SolveOptions(tolerance=-1.0),
        SolveOptions(max_iterations=-1),
        SolveOptions(fd_step=0.0),
        SolveOptions(damping=float('inf')),
        SolveOptions(damping=float('nan')),
    ],
)
def test_invalid_options_are_rejected(options):
    with pytest.raises(ValueError):
        ConstraintSolver(options)


def test_with_damping_rejects_nan():
    solver = ConstraintSolver()

    with pytest.raises(ValueError, match='damping must be finite'):
        solver.with_damping(float('nan'))

    assert solver.damping == 0.8


def test_options_property_returns_clamped_copy():
    solver = ConstraintSolver(SolveOptions(damping=3.0))

    opts = solver.options
    opts.tolerance = 5.0

    assert solver.options.damping == 1.0
    assert solver.tolerance == 1e-4
    assert solver.options is not solver.options


def test_solver_reads_process_defaults():
    set_default_solve_options(SolveOptions(tolerance=1e-6, max_iterations=10, damping=0.5))

    solver = ConstraintSolver()

    assert (solver.tolerance, solver.max_iterations, solver.damping) == (1e-6, 10, 0.5)
    assert get_default_solve_options().tolerance == 1e-6


def test_default_options_are_copied():
    options = get_default_solve_options()
    options.tolerance = 123.0

    assert get_default_solve_options().tolerance == 1e-4


def test_from_options_equals_constructor():
    options = SolveOptions(tolerance=1e-3, damping=0.9)

    assert repr(ConstraintSolver.from_options(options)) == repr(ConstraintSolver(options))


def test_results_serialise_with_kind_tag():
    assert FullyConstrained().to_dict() == {'kind': 'fully_constrained'}
    assert UnderConstrained(dof=3).to_dict() == {'kind': 'under_constrained', 'dof': 3}
    assert OverConstrained(conflicts=('c1',)).to_dict() == {'kind': 'over_constrained', 'conflicts': ('c1',)}
    assert OverConstrained().converged
    assert Failed(reason='x').to_dict() == {'kind': 'failed', 'reason': 'x'}
    assert not Failed(reason='x').converged
