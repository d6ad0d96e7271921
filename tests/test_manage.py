import json
from datetime import date, timedelta

import pytest

import manage
from uxmetrics.infrastructure.logging import configure_test_logging


@pytest.fixture
def run(tmp_path, capsys):
    db_path = str(tmp_path / "ux.db")

    def _run(*argv):
        code = manage.main(["--sqlite-path", db_path, *argv])
        out, err = capsys.readouterr()
        return code, out, err

    yield _run
    configure_test_logging()


def test_init_creates_assessment_types(run):
    code, out, _ = run("init")
    assert code == 0
    assert "5 assessment types" in out


def test_seed_only_into_empty_store(run):
    assert run("seed")[0] == 0
    code, out, _ = run("seed")
    assert code == 1
    assert "--reset" in out
    assert run("seed", "--reset")[0] == 0


def test_metrics_json(run):
    run("seed")
    code, out, _ = run("metrics", "study-seed-1", "--json")
    assert code == 0
    payload = json.loads(out)
    assert payload["sessionCount"] == 8
    assert payload["participantCount"] == 4

    code, out, _ = run("metrics", "study-seed-1", "--participant", "person-seed-1", "--json")
    assert json.loads(out)["sessionCount"] == 2


def test_metrics_text_and_compare(run):
    run("seed")
    code, out, _ = run("metrics", "study-seed-4")
    assert code == 0
    assert "Sessions: 2" in out
    assert "seq" in out

    code, out, _ = run("compare", "study-seed-1", "study-seed-4", "--json")
    assert code == 0
    assert set(json.loads(out)["differences"]) == {
        "taskSuccessRate",
        "timeOnTask",
        "taskEfficiency",
        "errorRate",
        "seq",
    }


def test_report_writes_files(run, tmp_path):
    run("seed")
    xlsx = tmp_path / "report.xlsx"
    code, out, _ = run(
        "report",
        "study-seed-1",
        "--commentary",
        "Coupon entry needs work",
        "--output-dir",
        str(tmp_path / "reports"),
        "--xlsx",
        str(xlsx),
    )
    assert code == 0
    assert "Study: E-Commerce Checkout Flow" in out
    written = list((tmp_path / "reports").glob("report-study-seed-1-*.json"))
    assert len(written) == 1
    assert json.loads(written[0].read_text(encoding="utf-8"))["commentary"] == (
        "Coupon entry needs work"
    )
    assert xlsx.read_bytes().startswith(b"PK")


def test_report_for_unknown_study(run):
    run("init")
    code, _, err = run("report", "study-missing")
    assert code == 1
    assert "not found" in err


def test_backup_and_restore(run, tmp_path):
    run("seed")
    run("backup", "--backup-dir", str(tmp_path / "backups"))
    (backup,) = (tmp_path / "backups").glob("ux-metrics-backup-*.json")

    run("seed", "--reset")
    code, out, _ = run("restore", str(backup))
    assert code == 0
    assert "'studies': 7" in out


def test_restore_reports_user_message(run, tmp_path):
    bad = tmp_path / "backup.txt"
    bad.write_text("{}")
    code, _, err = run("restore", str(bad))
    assert code == 1
    assert "ERROR: Invalid file type" in err


def test_reversed_date_range_is_a_user_error(run):
    run("seed")
    code, _, err = run("metrics", "study-seed-1", "--from", "2024-06-03", "--to", "2024-06-01")
    assert code == 1
    assert "ERROR: Invalid date range: start date must not be after end date" in err
    assert "Traceback" not in err


def test_compare_time_periods(run):
    run("seed")
    split = date.today() - timedelta(days=14)
    code, out, _ = run(
        "compare",
        "study-seed-1",
        "--baseline-to",
        split.isoformat(),
        "--comparison-from",
        (split + timedelta(days=1)).isoformat(),
        "--json",
    )
    assert code == 0
    payload = json.loads(out)
    assert payload["baseline"]["sessionCount"] == 4
    assert payload["comparison"]["sessionCount"] == 4

    code, out, _ = run("compare", "study-seed-1", "--comparison-from", split.isoformat())
    assert code == 0
    assert out.startswith("study-seed-1: baseline period -> comparison period")


def test_compare_needs_a_second_study_or_periods(run):
    run("init")
    code, _, err = run("compare", "study-seed-1")
    assert code == 1
    assert "Invalid comparison" in err

    code, _, err = run("compare", "study-seed-1", "study-seed-4", "--baseline-from", "2024-01-01")
    assert code == 1
    assert "Invalid comparison" in err
