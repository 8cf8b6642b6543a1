import json

import pytest

import parasketch.__main__ as cli
from parasketch import Fixed, Horizontal, Sketch, ValidationError


def _write_sketch(tmp_path, sketch):
    path = tmp_path / 'sketch.json'
    path.write_text(json.dumps(sketch.to_dict()), encoding='utf-8')
    return path


def test_main_prints_result_and_writes_solved_sketch(tmp_path, capsys):
    sketch = Sketch('single point')
    sketch.add_point(5.0, 5.0, entity_id='p')
    sketch.add_constraint(Fixed('p', 1.0, 2.0))
    path = _write_sketch(tmp_path, sketch)
    output_path = tmp_path / 'out' / 'solved.json'

    cli.main([str(path), '--output', str(output_path), '--log-level', 'WARNING'])

    out = capsys.readouterr().out
    assert 'Result: fully_constrained' in out
    assert 'DOF: 0' in out
    assert '  p: (' in out

    solved = Sketch.from_dict(json.loads(output_path.read_text(encoding='utf-8')))
    x, y = solved.point_position('p')
    assert abs(x - 1.0) < 0.01 and abs(y - 2.0) < 0.01


def test_main_reports_remaining_freedom(tmp_path, capsys):
    sketch = Sketch()
    line, _, _ = sketch.add_line_from_coords(0.0, 0.0, 10.0, 5.0)
    sketch.add_constraint(Horizontal(line))
    path = _write_sketch(tmp_path, sketch)

    cli.main([str(path), '--residuals'])

    out = capsys.readouterr().out
    assert 'Result: under_constrained' in out
    assert 'DOF: 3' in out
    assert 'Residuals:' in out
    assert 'Horizontal' in out


def test_main_exits_with_error_on_failure(tmp_path, capsys):
    sketch = Sketch()
    sketch.add_point(0.0, 0.0, entity_id='p')
    sketch.add_constraint(Fixed('p', 0.0, 0.0))
    sketch.add_constraint(Fixed('p', 6.0, 0.0))
    path = _write_sketch(tmp_path, sketch)

    with pytest.raises(SystemExit) as exc:
        cli.main([str(path), '--max-iterations', '4', '--damping', '2.0'])

    assert exc.value.code == 1
    out = capsys.readouterr().out
    assert 'Result: failed' in out
    assert 'Reason: Failed to converge after 4 iterations' in out


def test_main_validates_unless_disabled(tmp_path, capsys):
    sketch = Sketch()
    center = sketch.add_point(0.0, 0.0)
    circle = sketch.add_circle(center, 1.0)
    sketch.add_constraint(Horizontal(circle))
    path = _write_sketch(tmp_path, sketch)

    with pytest.raises(ValidationError):
        cli.main([str(path)])

    cli.main([str(path), '--no-validate'])
    assert 'Result:' in capsys.readouterr().out


def test_command_line_options_override_defaults(monkeypatch, tmp_path):
    sketch = Sketch()
    sketch.add_point(0.0, 0.0)
    path = _write_sketch(tmp_path, sketch)
    seen = []

    class _RecordingSolver(cli.ConstraintSolver):
        def __init__(self, options=None):
            super().__init__(options)
            seen.append(self)

    monkeypatch.setattr(cli, 'ConstraintSolver', _RecordingSolver)

    cli.main([str(path), '--tolerance', '1e-6', '--max-iterations', '7', '--damping', '0.05'])

    assert len(seen) == 1
    solver = seen[0]
    assert (solver.tolerance, solver.max_iterations, solver.damping) == (1e-6, 7, 0.1)


def test_help_describes_no_validate(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(['--help'])

    assert exc.value.code == 0
    out = ' '.join(capsys.readouterr().out.split())
    assert 'ignore references to entities of the wrong kind' in out
