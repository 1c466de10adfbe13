"""Tests for the command line interface."""

import zipfile

from typer.testing import CliRunner

from epub_pack.cli import app

from conftest import write_files, xhtml

runner = CliRunner()


class TestBuildCommand:
    def test_builds_archive(self, tmp_path):
        directory = write_files(tmp_path / "novel", {"ch1.xhtml": xhtml(title="Start")})
        result = runner.invoke(app, ["build", str(directory), "--quiet"])
        assert result.exit_code == 0, result.output
        with zipfile.ZipFile(tmp_path / "novel.epub") as zf:
            assert zf.namelist()[0] == "mimetype"

    def test_custom_output_and_summary(self, tmp_path):
        directory = write_files(tmp_path / "novel", {"ch1.xhtml": xhtml()})
        target = tmp_path / "out" / "book.epub"
        result = runner.invoke(app, ["build", str(directory), "-o", str(target)])
        assert result.exit_code == 0, result.output
        assert target.exists()
        assert "Reading Order" in result.output
        assert "ch1.xhtml" in result.output

    def test_fatal_error_exits_with_one(self, tmp_path):
        directory = write_files(tmp_path / "novel", {"mimetype": "text/plain"})
        result = runner.invoke(app, ["build", str(directory), "--quiet"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not (tmp_path / "novel.epub").exists()

    def test_existing_output_requires_force(self, tmp_path):
        directory = write_files(tmp_path / "novel", {"ch1.xhtml": xhtml()})
        assert runner.invoke(app, ["build", str(directory), "-q"]).exit_code == 0
        assert runner.invoke(app, ["build", str(directory), "-q"]).exit_code == 1
        assert runner.invoke(app, ["build", str(directory), "-q", "--force"]).exit_code == 0

    def test_missing_directory(self, tmp_path):
        result = runner.invoke(app, ["build", str(tmp_path / "nope")])
        assert result.exit_code != 0


class TestSniffCommand:
    def test_reports_types(self, tmp_path):
        png = tmp_path / "img.bin"
        png.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 8)
        result = runner.invoke(app, ["sniff", str(png)])
        assert result.exit_code == 0, result.output
        assert "image/png" in result.output

    def test_failure_sets_exit_code(self, tmp_path):
        empty = tmp_path / "empty.png"
        empty.write_bytes(b"")
        result = runner.invoke(app, ["sniff", str(empty)])
        assert result.exit_code == 1
