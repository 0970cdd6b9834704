"""Tests for the dicom-query command-line interface."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator
from unittest import mock

import pytest

from conftest import make_record
from dicom_query.cli import query as cli
from dicom_query.core.store import LocalResultStore


@pytest.fixture
def quiet_setup() -> Iterator[None]:
    """Keep main() from touching the working directory or the root logger."""
    with mock.patch.object(cli, "ensure_dirs_exist"), mock.patch.object(cli, "configure_logging"):
        yield


class TestArguments:
    """Tests for argument parsing."""

    def test_filters_from_args(self) -> None:
        """Test that each filter flag maps to its filter name."""
        args = cli.build_parser().parse_args([
            "--name", "Doe", "--study", "Head", "--series", "Axial",
            "--patient-id", "12", "--modality", "CT", "--modality", "MR",
        ])

        assert cli.filters_from_args(args) == {
            "Name": "Doe",
            "Study": "Head",
            "Series": "Axial",
            "ID": "12",
            "Modalities": ["CT", "MR"],
        }

    def test_unset_filters_are_left_out(self) -> None:
        """Test that only supplied filters are included."""
        args = cli.build_parser().parse_args(["--name", ""])

        assert cli.filters_from_args(args) == {"Name": ""}

    def test_connection_arguments(self) -> None:
        """Test connection flags."""
        args = cli.build_parser().parse_args(
            ["--calling-aet", "ME", "--called-aet", "PACS", "--host", "pacs", "--port", "104"]
        )

        assert (args.calling_aet, args.called_aet, args.host, args.port) == ("ME", "PACS", "pacs", 104)

    def test_skip_empty_filters_can_be_turned_off(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that --no-skip-empty-filters overrides an environment default of true."""
        monkeypatch.setattr(cli, "DEFAULT_SKIP_EMPTY_FILTERS", True)
        parser = cli.build_parser()

        assert parser.parse_args([]).skip_empty_filters is True
        assert parser.parse_args(["--no-skip-empty-filters"]).skip_empty_filters is False

    def test_skip_empty_filters_can_be_turned_on(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that --skip-empty-filters overrides a default of false."""
        monkeypatch.setattr(cli, "DEFAULT_SKIP_EMPTY_FILTERS", False)
        parser = cli.build_parser()

        assert parser.parse_args([]).skip_empty_filters is False
        assert parser.parse_args(["--skip-empty-filters"]).skip_empty_filters is True


class TestMain:
    """Tests for main."""

    def test_show_config(self, capsys: pytest.CaptureFixture) -> None:
        """Test that --show-config prints the configuration and exits."""
        with mock.patch.object(cli, "DicomQuery") as query_cls:
            assert cli.main(["--show-config"]) == 0

        query_cls.assert_not_called()
        assert "Current Configuration" in capsys.readouterr().out

    def test_runs_query(self, quiet_setup: None, tmp_path: Path) -> None:
        """Test that main builds the query from the arguments and runs it."""
        store_dir = tmp_path / "results"
        with mock.patch.object(cli, "DicomQuery") as query_cls:
            code = cli.main([
                "--called-aet", "PACS", "--host", "pacs", "--port", "104",
                "--name", "Doe", "--store-dir", str(store_dir), "--skip-empty-filters",
            ])

        assert code == 0
        kwargs = query_cls.call_args.kwargs
        assert kwargs["called_ae_title"] == "PACS"
        assert kwargs["port"] == 104
        assert kwargs["filters"] == {"Name": "Doe"}
        assert kwargs["skip_empty_filters"] is True

        ingestor, reporter = query_cls.return_value.query.call_args.args
        assert isinstance(ingestor, LocalResultStore)
        assert ingestor.storage_dir == store_dir
        assert hasattr(reporter, "report_progress")

    def test_client_factory_uses_timeouts(self, quiet_setup: None, tmp_path: Path) -> None:
        """Test that the timeout flags reach the association client."""
        with mock.patch.object(cli, "DicomQuery") as query_cls:
            cli.main(["--store-dir", str(tmp_path), "--acse-timeout", "3", "--dimse-timeout", "4",
                      "--network-timeout", "5"])

        client = query_cls.call_args.kwargs["client_factory"]()
        assert (client.acse_timeout, client.dimse_timeout, client.network_timeout) == (3, 4, 5)

    def test_unexpected_error_returns_failure(self, quiet_setup: None, tmp_path: Path) -> None:
        """Test that an exception from the run gives a non-zero exit code."""
        with mock.patch.object(cli, "DicomQuery") as query_cls:
            query_cls.return_value.query.side_effect = RuntimeError("boom")

            assert cli.main(["--store-dir", str(tmp_path)]) == 1

    def test_summary(self, quiet_setup: None, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """Test that --summary prints stored studies and series."""
        store = LocalResultStore(str(tmp_path))
        store.insert(make_record(PatientID="P1", PatientName="Doe^Jane",
                                 StudyInstanceUID="1.2.3", StudyDescription="Head"))
        store.insert(make_record("SERIES", PatientID="P1", StudyInstanceUID="1.2.3",
                                 SeriesInstanceUID="1.2.3.1", Modality="CT", SeriesNumber=2))

        with mock.patch.object(cli, "DicomQuery"):
            assert cli.main(["--store-dir", str(tmp_path), "--summary"]) == 0

        out = capsys.readouterr().out
        assert "Stored 1 studies and 1 series" in out
        assert "Doe^Jane (P1)" in out
        assert "#2 CT" in out
