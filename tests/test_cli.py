from __future__ import annotations

import json
from pathlib import Path

import pytest

from shiptrack.cli import main


@pytest.fixture
def bookings(tmp_path: Path) -> Path:
    path = tmp_path / "bookings.json"
    path.write_text(
        json.dumps(
            {
                "shipments": [
                    {"id": "SHP-1", "status": "IN_TRANSIT"},
                    {"id": "SHP-2", "status": "DELIVERED"},
                ],
                "assignments": [
                    {"id": "A-1", "shipment_id": "SHP-1", "vehicle_number": "KA01AB1234"},
                    {"id": "A-2", "shipment_id": "SHP-2", "vehicle_number": "MH12XY0001"},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def _mock_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHIPTRACK_USE_MOCK_DATA", "1")


def test_crossings_then_cached_with_state_file(
    bookings: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    state = tmp_path / "state.json"

    assert main(["--bookings", str(bookings), "--state", str(state), "crossings", "SHP-1"]) == 0
    refreshed = json.loads(capsys.readouterr().out)
    assert refreshed["source_kind"] == "mock"
    assert refreshed["new_count"] == 2
    assert state.exists()

    assert main(["--bookings", str(bookings), "--state", str(state), "cached", "SHP-1", "--map"]) == 0
    view = json.loads(capsys.readouterr().out)
    assert len(view["points"]) == 2
    assert view["viewport"]["zoom"] == 8


def test_enable_sim_is_reused_across_runs(bookings: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    state = tmp_path / "state.json"
    args = ["--bookings", str(bookings), "--state", str(state), "enable-sim", "SHP-1", "9999999999", "--days", "2"]

    assert main(args) == 0
    first = json.loads(capsys.readouterr().out)
    assert main(args) == 0
    second = json.loads(capsys.readouterr().out)

    assert first["reused_existing"] is False
    assert second["reused_existing"] is True
    assert second["registration"]["id"] == first["registration"]["id"]


def test_disabled_shipment_reports_error(bookings: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--bookings", str(bookings), "crossings", "SHP-2"]) == 1
    error = json.loads(capsys.readouterr().out)
    assert error["error"] == "LifecycleDisabledError"
    assert "booking delivered" in error["detail"]


def test_invalid_phone_is_input_error(bookings: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--bookings", str(bookings), "enable-sim", "SHP-1", "12345"]) == 2
    assert json.loads(capsys.readouterr().out)["error"] == "invalid input"


def test_usage_for_empty_month(bookings: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--bookings", str(bookings), "usage", "--provider", "cellular"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["period"]["provider"] == "cellular"
    assert summary["period"]["call_count"] == 0
    assert summary["daily"] == []
