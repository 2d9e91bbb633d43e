import csv
import json

from arena.app.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_log_header(tmp_path):
    log_path = tmp_path / "run.csv"
    run_headless(steps=3, seed=1, log_path=log_path, deterministic_log=True)
    rows = _read_csv(log_path)
    assert len(rows) == 4
    assert rows[0] == [
        "tick",
        "status",
        "population",
        "enemies",
        "consumed",
        "spawned",
        "score",
        "controlled_radius",
        "largest_radius",
        "avg_radius",
        "collision_checks",
        "tick_ms",
    ]
    assert [row[0] for row in rows[1:]] == ["0", "1", "2"]
    assert all(float(row[-1]) == 0.0 for row in rows[1:])


def test_headless_deterministic_logs_match(tmp_path):
    first = tmp_path / "first.csv"
    second = tmp_path / "second.csv"
    run_headless(steps=240, seed=9, log_path=first, deterministic_log=True, spin=True)
    run_headless(steps=240, seed=9, log_path=second, deterministic_log=True, spin=True)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    summary = run_headless(
        steps=5,
        seed=3,
        log_path=None,
        deterministic_log=True,
        summary_path=summary_path,
    )
    payload = json.loads(summary_path.read_text())
    assert payload == json.loads(json.dumps(summary))
    assert payload["steps"] == 5
    assert payload["seed"] == 3
    assert payload["population"]["min"] >= 1.0
    assert payload["tick_ms"]["max"] == 0.0
    for key in ["games_finished", "final_scores", "peak_score", "consumed", "spawned", "status"]:
        assert key in payload


def test_headless_reads_yaml_config(tmp_path):
    config_path = tmp_path / "arena.yaml"
    config_path.write_text("spawn:\n  initial_large_count: 0\n  initial_small_count: 3\n")
    summary = run_headless(steps=1, seed=4, log_path=None, autopilot=False, config_path=config_path)
    assert summary["population"]["max"] <= 4.0
    assert summary["seed"] == 4
