"""
CLI tests for sentinelcheck.cli.

Tests only:
  - Argument parsing
  - Exit codes for clean, dirty and invalid targets
  - JSON output shape
"""
import json
import logging
import os
import subprocess
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sentinelcheck.cli import build_parser, main
from sentinelcheck.logs import resolve_level


def _init_git_repo(path: Path) -> None:
    """Initialize a Git repo with one commit."""
    subprocess.run(["git", "init"], cwd=path, check=True, capture_output=True)
    subprocess.run(["git", "config", "user.email", "test@example.com"],
                   cwd=path, check=True, capture_output=True)
    subprocess.run(["git", "config", "user.name", "Test User"],
                   cwd=path, check=True, capture_output=True)
    dummy = path / "README.md"
    dummy.write_text("# Test\n")
    subprocess.run(["git", "add", "README.md"], cwd=path, check=True, capture_output=True)
    subprocess.run(["git", "commit", "-m", "init"], cwd=path, check=True, capture_output=True)


def _run_cli(*args):
    return subprocess.run(
        [sys.executable, "-m", "sentinelcheck.cli", *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
    )


class TestCLI:

    def test_analyze_command_on_valid_repo(self):
        """CLI runs successfully on a clean Git repo."""
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = Path(tmpdir)
            _init_git_repo(repo)
            (repo / "clean.py").write_text('value = f"{1 + 1}"\n')

            result = _run_cli("analyze", str(repo))

            assert result.returncode == 0, f"CLI failed: {result.stderr}"
            assert "Analyzed repository:" in result.stdout
            assert "Total findings: 0" in result.stdout

    def test_analyze_reports_findings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = Path(tmpdir)
            _init_git_repo(repo)
            (repo / "legacy.py").write_text('name = "x"\nvalue = f"${name}"\n')

            result = _run_cli("analyze", str(repo))

            assert result.returncode == 1
            assert "Total findings: 1" in result.stdout
            assert "legacy.py:2:11: FL0009 warning:" in result.stdout

    def test_nonexistent_path_returns_error(self):
        result = _run_cli("analyze", "/nonexistent/path")

        assert result.returncode == 1
        assert "does not exist" in result.stderr

    def test_non_git_directory_returns_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _run_cli("analyze", tmpdir)

            assert result.returncode == 1
            assert "Not a Git repository" in result.stderr

    def test_check_files_as_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "module.py"
            source.write_text('one = 1\nvalues = f"${one}${one}"\n')

            result = _run_cli("--format", "json", "check", str(source))

            assert result.returncode == 1
            payload = json.loads(result.stdout)
            assert [(item["line"], item["column"]) for item in payload] == [(2, 12), (2, 18)]
            assert {item["id"] for item in payload} == {"FL0009"}

    def test_check_missing_file(self):
        result = _run_cli("check", "/nonexistent/module.py")

        assert result.returncode == 1
        assert "does not exist" in result.stderr


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(["analyze"])

        assert args.command == "analyze"
        assert args.path == "."
        assert args.format == "text"
        assert not args.debug

    def test_check_requires_files(self, capsys):
        parser = build_parser()
        try:
            parser.parse_args(["check"])
        except SystemExit as e:
            assert e.code == 2
        else:
            raise AssertionError("check without files should fail")

    def test_main_on_clean_file(self, tmp_path, capsys):
        source = tmp_path / "clean.py"
        source.write_text("value = 1\n")

        assert main(["check", str(source)]) == 0
        assert "Total findings: 0" in capsys.readouterr().out


class TestLogLevel:

    def test_debug_flag_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv("SENTINELCHECK_LOG_LEVEL", "ERROR")
        assert resolve_level(debug=True) == logging.DEBUG

    def test_environment_level(self, monkeypatch):
        monkeypatch.setenv("SENTINELCHECK_LOG_LEVEL", " info ")
        assert resolve_level() == logging.INFO

    def test_unknown_level_falls_back_to_warning(self, monkeypatch):
        monkeypatch.setenv("SENTINELCHECK_LOG_LEVEL", "verbose")
        assert resolve_level() == logging.WARNING

    def test_unset_level(self, monkeypatch):
        monkeypatch.delenv("SENTINELCHECK_LOG_LEVEL", raising=False)
        assert resolve_level() == logging.WARNING

    def test_cli_with_unknown_level(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "clean.py"
            source.write_text("value = 1\n")

            result = subprocess.run(
                [sys.executable, "-m", "sentinelcheck.cli", "check", str(source)],
                cwd=ROOT,
                capture_output=True,
                text=True,
                env={**os.environ, "SENTINELCHECK_LOG_LEVEL": "verbose"},
            )

            assert result.returncode == 0, result.stderr
            assert "Traceback" not in result.stderr
