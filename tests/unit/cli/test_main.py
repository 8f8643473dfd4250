"""Unit tests for CLI command handling."""

from __future__ import annotations

import json

from cli.main import main
from tests.fixture_paths import fixture_path


def _records_arg(name: str) -> str:
    return str(fixture_path(f"records/{name}.json"))


def test_cli_stats_on_empty_store(tmp_path, capsys) -> None:
    """Stats should report every namespace with zero records."""
    exit_code = main(["--data-root", str(tmp_path), "stats"])
    stats = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and stats["total_size"] == 0 and stats["oldest"] is None
    assert sorted(stats["per_namespace"]) == ["analysis", "cache", "mapping", "report", "session"]


def test_cli_report_then_get_payload(tmp_path, capsys) -> None:
    """A stored CSV report should be readable by its logical key."""
    report_args = [
        "--data-root",
        str(tmp_path),
        "report",
        "--type",
        "team-roster",
        "--input",
        _records_arg("team_report"),
        "--format",
        "csv",
    ]
    get_args = ["--data-root", str(tmp_path), "get", "report", "report-team-roster"]

    report_exit = main(report_args)
    report_id = capsys.readouterr().out.strip()
    get_exit = main([*get_args, "--payload-only"])
    payload = json.loads(capsys.readouterr().out)

    assert report_exit == 0 and get_exit == 0 and bool(report_id)
    assert payload == 'name,age\n"Alice",30\n"Bob",25'


def test_cli_get_missing_record_exits_one(tmp_path, capsys) -> None:
    """Absent records should report not_found on stderr."""
    exit_code = main(["--data-root", str(tmp_path), "get", "cache", "nothing"])
    captured = capsys.readouterr()

    assert exit_code == 1 and captured.err.strip() == "not_found=cache/nothing"


def test_cli_forecast_prints_sprint_outcomes(tmp_path, capsys) -> None:
    """Forecast should print the delivery forecast as JSON."""
    args = [
        "--data-root",
        str(tmp_path),
        "forecast",
        "--project",
        "shop",
        "--remaining-work",
        "35",
        "--velocities",
        "10,10,10",
    ]

    exit_code = main(args)
    forecast = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and forecast["likely_sprints"] == 4 and forecast["capped_trials"] == 0


def test_cli_forecast_rejects_malformed_velocities(tmp_path, capsys) -> None:
    """Non-numeric velocities should exit with an error line."""
    args = [
        "--data-root",
        str(tmp_path),
        "forecast",
        "--project",
        "shop",
        "--remaining-work",
        "35",
        "--velocities",
        "10,fast",
    ]

    exit_code = main(args)
    captured = capsys.readouterr()

    assert exit_code == 1 and captured.err.startswith("error=Invalid --velocities value")


def test_cli_flow_reads_work_items(tmp_path, capsys) -> None:
    """Flow command should compute metrics from a record file."""
    args = [
        "--data-root",
        str(tmp_path),
        "flow",
        "--project",
        "shop",
        "--start",
        "2024-01-01",
        "--end",
        "2024-01-31",
        "--work-items",
        _records_arg("work_items"),
    ]

    exit_code = main(args)
    flow = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and flow["flow_efficiency"] == 75.0 and flow["wip"]["current"] == 2


def test_cli_sprint_and_dora(tmp_path, capsys) -> None:
    """Sprint and DORA commands should print their bundles."""
    sprint_args = [
        "--data-root",
        str(tmp_path),
        "sprint",
        "--project",
        "shop",
        "--iterations",
        _records_arg("iterations"),
        "--work-items",
        _records_arg("work_items"),
        "--sprints",
        "2",
    ]
    dora_args = [
        "--data-root",
        str(tmp_path),
        "dora",
        "--project",
        "shop",
        "--start",
        "2024-01-01",
        "--end",
        "2024-01-06",
        "--deployments",
        _records_arg("deployments"),
        "--incidents",
        _records_arg("incidents"),
    ]

    main(sprint_args)
    sprints = json.loads(capsys.readouterr().out)
    main(dora_args)
    dora = json.loads(capsys.readouterr().out)

    assert [sprint["velocity"] for sprint in sprints] == [8.0, 0.0]
    assert dora["performance_level"] == "high"


def test_cli_trend_reads_series(tmp_path, capsys) -> None:
    """Trend command should forecast the next period of a series."""
    args = [
        "--data-root",
        str(tmp_path),
        "trend",
        "--project",
        "shop",
        "--metric",
        "velocity",
        "--series",
        _records_arg("velocity_series"),
    ]

    exit_code = main(args)
    trend = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and trend["trend"]["forecast_next_period"] == 40.0


def test_cli_trend_rejects_non_numeric_series(tmp_path, capsys) -> None:
    """A non-numeric series value should exit with an error line."""
    series_path = tmp_path / "series.json"
    series_path.write_text(json.dumps([{"period": "S1", "value": None}]), encoding="utf-8")
    args = [
        "--data-root",
        str(tmp_path / "store"),
        "trend",
        "--project",
        "shop",
        "--metric",
        "velocity",
        "--series",
        str(series_path),
    ]

    exit_code = main(args)
    captured = capsys.readouterr()

    assert exit_code == 1 and captured.err.startswith("error=Invalid series value")


def test_cli_collect_then_sweep(tmp_path, capsys) -> None:
    """Collect should run the default metrics; a fresh sweep removes nothing."""
    collect_args = [
        "--data-root",
        str(tmp_path),
        "collect",
        "--project",
        "shop",
        "--start",
        "2024-01-01",
        "--end",
        "2024-01-14",
        "--inputs",
        _records_arg("collection_inputs"),
    ]

    collect_exit = main(collect_args)
    result = json.loads(capsys.readouterr().out)
    sweep_exit = main(["--data-root", str(tmp_path), "sweep"])
    sweep_output = capsys.readouterr().out.strip()

    assert collect_exit == 0 and result["metrics_collected"] == ["velocity", "flow", "dora"]
    assert sweep_exit == 0 and sweep_output == "removed=0"


def test_cli_collect_rejects_list_inputs(tmp_path, capsys) -> None:
    """Collection inputs must be a JSON object."""
    args = [
        "--data-root",
        str(tmp_path),
        "collect",
        "--project",
        "shop",
        "--start",
        "2024-01-01",
        "--end",
        "2024-01-14",
        "--inputs",
        _records_arg("work_items"),
    ]

    exit_code = main(args)

    assert exit_code == 1 and "expected a JSON object" in capsys.readouterr().err


def test_cli_reports_missing_input_file(tmp_path, capsys) -> None:
    """Unreadable input paths should exit with an error line."""
    args = [
        "--data-root",
        str(tmp_path),
        "report",
        "--type",
        "weekly",
        "--input",
        str(tmp_path / "absent.json"),
    ]

    exit_code = main(args)

    assert exit_code == 1 and "Failed to read input file" in capsys.readouterr().err


def test_cli_rejects_reversed_date_range(tmp_path, capsys) -> None:
    """An end date before the start should fail cleanly."""
    args = [
        "--data-root",
        str(tmp_path),
        "flow",
        "--project",
        "shop",
        "--start",
        "2024-02-01",
        "--end",
        "2024-01-01",
        "--work-items",
        _records_arg("work_items"),
    ]

    exit_code = main(args)

    assert exit_code == 1 and "end must not precede start" in capsys.readouterr().err


def test_cli_data_root_overrides_settings_file(tmp_path, capsys) -> None:
    """--data-root should win over data_root from the settings file."""
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text(f"data_root: {tmp_path / 'from-settings'}\n", encoding="utf-8")

    settings_exit = main(["--settings-file", str(settings_path), "stats"])
    override_exit = main(
        [
            "--settings-file",
            str(settings_path),
            "--data-root",
            str(tmp_path / "from-flag"),
            "stats",
        ]
    )
    _ = capsys.readouterr()

    assert settings_exit == 0 and override_exit == 0
    assert (tmp_path / "from-settings" / "cache").is_dir()
    assert (tmp_path / "from-flag" / "cache").is_dir()


def test_cli_rejects_invalid_settings_file(tmp_path, capsys) -> None:
    """Unknown settings keys should be reported as errors."""
    args = [
        "--data-root",
        str(tmp_path),
        "--settings-file",
        str(fixture_path("settings/unknown_key.yaml")),
        "stats",
    ]

    exit_code = main(args)

    assert exit_code == 1 and "Unsupported settings keys: retry_count" in capsys.readouterr().err
