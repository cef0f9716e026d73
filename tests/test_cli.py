"""
Tests for the command line interface.
"""

import json
from pathlib import Path

import pendulum
from typer.testing import CliRunner

from salonagenda import __version__
from salonagenda.cli.app import app

TZ = "America/Sao_Paulo"

runner = CliRunner()


def _setup(tmp_path: Path) -> tuple[Path, pendulum.DateTime]:
    """Write a config and agenda a month ahead so no slot lies in the past."""
    day = pendulum.now(TZ).add(days=30).start_of("day")
    data = {
        "services": [
            {"id": "svc-cut", "name": "Corte", "price": 40, "duration_minutes": 45},
        ],
        "clients": [
            {"id": "cli-ana", "name": "Ana Souza", "phone": "+55 11 98888-0001"},
            {"id": "cli-bia", "name": "Beatriz Lima", "phone": "+55 11 98888-0002"},
        ],
        "appointments": [
            {
                "id": "apt-1",
                "client_id": "cli-ana",
                "service_id": "svc-cut",
                "start": day.add(hours=10).to_iso8601_string(),
                "end": day.add(hours=11).to_iso8601_string(),
                "status": "confirmed",
            },
        ],
        "blocked_periods": [
            {"id": "blk-1", "date": day.add(days=1).to_date_string(), "reason": "Training"},
        ],
        "expenses": [
            {"id": "exp-1", "name": "Rent", "amount": 100, "date": day.to_date_string()},
        ],
    }
    (tmp_path / "agenda.json").write_text(json.dumps(data), encoding="utf-8")

    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"timezone: {TZ}\ndata_file: agenda.json\n", encoding="utf-8")
    return config_path, day


class TestCheckCommand:
    """Tests for the check command."""

    def test_conflict(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(app, ["check", day.to_date_string(), "10:30", "--config", str(config_path)])

        assert result.exit_code == 2
        assert "Not available" in result.output
        assert "Ana Souza" in result.output

    def test_available(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(
            app,
            ["check", day.to_date_string(), "11:00", "--service", "Corte", "--config", str(config_path)],
        )

        assert result.exit_code == 0
        assert "Available" in result.output

    def test_blocked_day(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(app, ["check", day.add(days=1).to_date_string(), "09:00", "--config", str(config_path)])

        assert result.exit_code == 2
        assert "Training" in result.output

    def test_bad_time(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(app, ["check", day.to_date_string(), "late", "--config", str(config_path)])

        assert result.exit_code == 1


class TestListingCommands:
    """Tests for the read-only listing commands."""

    def test_slots(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(
            app,
            ["slots", "--config", str(config_path), "--start", day.to_date_string(), "--days", "1", "-n", "3"],
        )

        assert result.exit_code == 0
        assert "3 free slot(s)" in result.output
        assert "07:00" in result.output

    def test_occupancy(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(app, ["occupancy", "--config", str(config_path), "--month", day.format("YYYY-MM")])

        assert result.exit_code == 0
        assert "Occupancy" in result.output

    def test_finance(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(app, ["finance", "--config", str(config_path), "--month", day.format("YYYY-MM")])

        assert result.exit_code == 0
        assert "Revenue" in result.output
        assert "Corte" in result.output

    def test_stats(self, tmp_path: Path):
        config_path, day = _setup(tmp_path)

        result = runner.invoke(app, ["stats", "--config", str(config_path), "--month", day.format("YYYY-MM")])

        assert result.exit_code == 0
        assert "Corte" in result.output
        assert "+15 min" in result.output
        assert "No cancellations" in result.output

    def test_inactive(self, tmp_path: Path):
        config_path, _ = _setup(tmp_path)

        result = runner.invoke(app, ["inactive", "--config", str(config_path)])

        assert result.exit_code == 0
        assert "Beatriz Lima" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestErrors:
    """Tests for error reporting."""

    def test_missing_data_file(self, tmp_path: Path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("data_file: missing.json\n", encoding="utf-8")

        result = runner.invoke(app, ["slots", "--config", str(config_path)])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_config_file(self, tmp_path: Path):
        result = runner.invoke(app, ["slots", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_bad_month(self, tmp_path: Path):
        config_path, _ = _setup(tmp_path)

        result = runner.invoke(app, ["finance", "--config", str(config_path), "--month", "november"])

        assert result.exit_code == 1
