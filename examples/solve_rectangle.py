"""Example: square up a rough rectangle with geometric and dimensional constraints."""

from parasketch import Fixed, Horizontal, Length, Sketch, Vertical, solve

CORNERS = [(0.3, -0.2), (9.0, 0.5), (10.5, 4.6), (-0.4, 5.3)]


def main() -> None:
    sketch = Sketch("Rectangle")
    points = [sketch.add_point(x, y, entity_id=name) for name, (x, y) in zip("ABCD", CORNERS)]
    lines = [sketch.add_line(points[i], points[(i + 1) % 4]) for i in range(4)]

    sketch.add_constraint(Fixed(points[0], 0.0, 0.0))
    sketch.add_constraint(Horizontal(lines[0]))
    sketch.add_constraint(Vertical(lines[1]))
    sketch.add_constraint(Horizontal(lines[2]))
    sketch.add_constraint(Vertical(lines[3]))
    sketch.add_constraint(Length(lines[0], 10.0))
    sketch.add_constraint(Length(lines[3], 5.0))
    print(f"Degrees of freedom before solving: {sketch.degrees_of_freedom()}")

    result = solve(sketch, validate=True)
    print("Result:", result.kind)
    for name in sketch.point_ids:
        x, y = sketch.point_position(name)
        print(f"{name}: ({x:.6f}, {y:.6f})")


if __name__ == "__main__":
    main()
