"""Tests for the click command line."""

from pathlib import Path

from click.testing import CliRunner

from makedot.cli import cli, resolve_makefile

FIXTURES = Path(__file__).parent / "fixtures"
PROJECT_DIR = FIXTURES / "project"


def test_scan_mode_prints_graph():
    result = CliRunner().invoke(cli, [str(PROJECT_DIR / "Makefile"), "--mode", "scan"])
    assert result.exit_code == 0, result.output
    assert result.stdout.startswith('digraph "makefile" {')
    assert '"README.md" -> "docs";' in result.stdout
    assert result.stdout.endswith("}\n")


def test_directory_argument():
    result = CliRunner().invoke(cli, [str(PROJECT_DIR), "--mode", "scan"])
    assert result.exit_code == 0, result.output
    assert '"build" -> "all";' in result.stdout


def test_target_option():
    result = CliRunner().invoke(cli, [str(PROJECT_DIR), "-m", "scan", "-t", "docs"])
    assert result.exit_code == 0, result.output
    assert '"README.md" -> "docs";' in result.stdout
    assert '"build"' not in result.stdout


def test_scan_follows_sub_makes():
    result = CliRunner().invoke(cli, [str(FIXTURES / "submake"), "-m", "scan"])
    assert result.exit_code == 0, result.output
    assert '"lib/Makefile:libutil.a" -> "app";' in result.stdout
    assert '"docs/Makefile:html" -> "docs";' in result.stdout


def test_unknown_target():
    result = CliRunner().invoke(cli, [str(PROJECT_DIR), "-m", "scan", "-t", "nope"])
    assert result.exit_code == 1
    assert "unknown target" in result.output


def test_output_file(tmp_path):
    out = tmp_path / "graph.dot"
    result = CliRunner().invoke(cli, [str(PROJECT_DIR), "-m", "scan", "--rankdir", "TB", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert result.stdout == ""
    assert 'rankdir="TB";' in out.read_text()


def test_missing_makefile(tmp_path):
    result = CliRunner().invoke(cli, [str(tmp_path), "-m", "scan"])
    assert result.exit_code == 1
    assert "Makefile not found" in result.output
    assert "digraph" not in result.stdout


def test_missing_make_command(tmp_path):
    out = tmp_path / "graph.dot"
    result = CliRunner().invoke(
        cli,
        [str(PROJECT_DIR), "-m", "make", "-o", str(out)],
        env={"MAKEDOT_MAKE": "makedot-no-such-make-binary"},
    )
    assert result.exit_code == 1
    assert "makedot-no-such-make-binary" in result.output
    assert not out.exists()


def test_auto_falls_back_without_make():
    result = CliRunner().invoke(
        cli, [str(PROJECT_DIR)], env={"MAKEDOT_MAKE": "makedot-no-such-make-binary"},
    )
    assert result.exit_code == 0, result.output
    assert '"$(OBJS)" -> "app";' in result.stdout


def test_resolve_makefile(tmp_path):
    assert resolve_makefile(tmp_path) == tmp_path / "Makefile"
    (tmp_path / "makefile").write_text("all:\n")
    assert resolve_makefile(tmp_path) == tmp_path / "makefile"
    (tmp_path / "GNUmakefile").write_text("all:\n")
    assert resolve_makefile(tmp_path) == tmp_path / "GNUmakefile"
    assert resolve_makefile(tmp_path / "other.mk") == tmp_path / "other.mk"


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
