# tests/test_cli.py
import pytest
import main as cli

@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # setup_logging rebinds root handlers to the captured stdout
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)

@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("name,age\nAnn,30\nBob,\nAnn,30\n", encoding="utf-8")
    return path

class TestCLI:

    def test_analyze(self, csv_file, capsys):
        cli.main(["--csv-path", str(csv_file), "--operation", "analyze"])

        out = capsys.readouterr().out
        assert "Total rows: 3" in out
        assert "Duplicate rows: 1" in out

    def test_dataset_output_is_written(self, csv_file, tmp_path, capsys):
        output = tmp_path / "clean.csv"

        cli.main(["--csv-path", str(csv_file), "--operation", "remove_duplicates", "--output", str(output)])

        assert "Removed 1 duplicate rows" in capsys.readouterr().out
        assert output.read_text(encoding="utf-8") == '"name","age"\n"Ann","30"\n"Bob",""\n'

    def test_logging_uses_configured_log_dir(self, csv_file, monkeypatch):
        calls = []
        monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: calls.append(kwargs))

        cli.main(["--csv-path", str(csv_file), "--operation", "analyze", "--log-level", "ERROR"])

        assert calls[0]["log_level"] == "ERROR"
        assert calls[0]["log_dir"] == str(cli.get_config().paths.LOGS_DIR)

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--csv-path", str(tmp_path / "nope.csv"), "--operation", "analyze"])

        assert exc_info.value.code == 1
        assert "CSV file not found" in capsys.readouterr().out

    def test_error_result_exits_non_zero(self, csv_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--csv-path", str(csv_file), "--operation", "summarize", "--column", "height"])

        assert exc_info.value.code == 1
        assert 'Column "height" not found' in capsys.readouterr().out

    def test_unknown_operation_is_a_usage_error(self, csv_file):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--csv-path", str(csv_file), "--operation", "explode"])

        assert exc_info.value.code == 2

    def test_download_names_file_after_input(self, csv_file, capsys):
        cli.main(["--csv-path", str(csv_file), "--operation", "download_data", "--format", "excel"])

        out = capsys.readouterr().out
        assert '"file_name": "people_cleaned.xls"' in out
        assert "data:application/vnd.ms-excel;base64," in out
