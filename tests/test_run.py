import json
from datetime import date

import pytest

from run import format_solution, main, parse_args
from src.utils.io import load_json

SATISFIABLE = {
    "id": "sat",
    "n_meetings": 2,
    "range_start": "2024-01-01",
    "range_end": "2024-01-03",
    "constraints": ["0 == 2024-01-01", "1 > 0"],
}
UNSATISFIABLE = {**SATISFIABLE, "id": "unsat", "constraints": ["0 < 1", "1 < 0"]}
INVALID = {**SATISFIABLE, "id": "bad", "n_meetings": 0}


def _write(path, payload):
    path.write_text(json.dumps(payload))
    return path


def test_format_solution():
    assert format_solution([date(2024, 1, 1), date(2024, 1, 2)]) == ["2024-01-01", "2024-01-02"]
    assert format_solution(None) is None


def test_main_single_file(tmp_path):
    path = _write(tmp_path / "problem.json", SATISFIABLE)
    results = main([str(path)])
    assert results == [
        {"id": "sat", "solution": ["2024-01-01", "2024-01-02"], "steps": 2, "status": "solved"}
    ]


def test_main_directory_input(tmp_path):
    _write(tmp_path / "a.json", SATISFIABLE)
    _write(tmp_path / "b.json", UNSATISFIABLE)
    (tmp_path / "notes.txt").write_text("ignored")

    results = main([str(tmp_path)])
    assert [(r["id"], r["status"]) for r in results] == [("sat", "solved"), ("unsat", "unsatisfiable")]
    assert results[1]["solution"] is None


def test_main_records_invalid_problems_and_continues(tmp_path, capsys):
    path = _write(tmp_path / "batch.json", [INVALID, SATISFIABLE])
    results = main([str(path)])

    assert results[0] == {"id": "bad", "solution": None, "steps": -1, "status": "invalid"}
    assert results[1]["status"] == "solved"
    assert "ERROR: Invalid problem bad" in capsys.readouterr().out


def test_csv_output(tmp_path):
    path = _write(tmp_path / "batch.json", [SATISFIABLE, UNSATISFIABLE])
    output_path = tmp_path / "results.csv"

    main([str(path), "--output", str(output_path), "--include-status"])

    lines = output_path.read_text().splitlines()
    assert lines[0] == "id,solution,steps,status"
    assert lines[1] == 'sat,"[""2024-01-01"",""2024-01-02""]",2,solved'
    assert lines[2].startswith("unsat,null,")
    assert lines[2].endswith(",unsatisfiable")


def test_json_output_and_fixed_point(tmp_path):
    path = _write(tmp_path / "problem.json", SATISFIABLE)
    output_path = tmp_path / "out" / "results.json"

    main([str(path), "--output", str(output_path), "--fixed-point"])

    payload = load_json(output_path)
    assert payload[0]["solution"] == ["2024-01-01", "2024-01-02"]


def test_trace_dir_receives_one_file_per_problem(tmp_path):
    path = _write(tmp_path / "batch.json", [SATISFIABLE, UNSATISFIABLE])
    trace_dir = tmp_path / "traces"

    main([str(path), "--trace-dir", str(trace_dir)])

    assert sorted(p.name for p in trace_dir.iterdir()) == ["sat_trace.csv", "unsat_trace.csv"]
    assert "solution_found" in (trace_dir / "sat_trace.csv").read_text()


def test_input_falls_back_to_environment(tmp_path, monkeypatch):
    path = _write(tmp_path / "problem.json", SATISFIABLE)
    monkeypatch.setenv("CALENDAR_DATA_PATH", str(path))
    assert parse_args([]).input == path

    monkeypatch.delenv("CALENDAR_DATA_PATH")
    with pytest.raises(SystemExit):
        parse_args([])


def test_missing_input_path(tmp_path):
    with pytest.raises(ValueError):
        main([str(tmp_path / "nowhere")])


def test_unreadable_file_in_directory_is_skipped(tmp_path, capsys):
    _write(tmp_path / "a.json", SATISFIABLE)
    (tmp_path / "b.parquet").write_bytes(b"not a parquet file")
    _write(tmp_path / "c.json", UNSATISFIABLE)

    results = main([str(tmp_path)])

    assert [r["id"] for r in results] == ["sat", "unsat"]
    assert "ERROR: Failed to load" in capsys.readouterr().out
