"""Example: drop a horizontal line onto a fixed circle and inspect the residuals."""

from parasketch import Fixed, Horizontal, Sketch, Tangent
from parasketch.solver import ConstraintSolver, VariableMap, residual_breakdown


def main() -> None:
    sketch = Sketch("Tangent line")
    center = sketch.add_point(0.0, 0.0, entity_id="O")
    circle = sketch.add_circle(center, 2.0, entity_id="circle")
    line, _, _ = sketch.add_line_from_coords(-5.0, 3.0, 5.0, 3.5)

    sketch.add_constraint(Fixed(center, 0.0, 0.0))
    sketch.add_constraint(Horizontal(line))
    sketch.add_constraint(Tangent(line, circle))

    solver = ConstraintSolver().with_tolerance(1e-6).with_damping(1.0)
    result = sketch.solve(solver)
    print("Result:", result.kind, f"(dof={getattr(result, 'dof', 0)})")

    for entry in residual_breakdown(sketch, VariableMap.from_sketch(sketch)):
        print(f"  {entry.type_name}: max |residual| = {entry.max_abs:.3e}")
    for point_id in sketch.point_ids:
        x, y = sketch.point_position(point_id)
        print(f"{point_id}: ({x:.6f}, {y:.6f})")


if __name__ == "__main__":
    main()
