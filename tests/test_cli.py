"""CLI market management and history commands against a temp DuckDB."""

from typer.testing import CliRunner

from predindex.cli.app import app

ADDR = "0x" + "ab" * 32

runner = CliRunner()


def _invoke(db_path, *args):
    return runner.invoke(app, list(args), env={"PREDINDEX_DB_PATH": str(db_path)})


def test_add_list_show_remove(db_path):
    result = _invoke(db_path, "markets", "add", "--name", "Rain?", "--address", ADDR, "-o", "Yes", "-o", "No", "-o", "Maybe")
    assert result.exit_code == 0, result.output
    assert "Added market 1" in result.output

    result = _invoke(db_path, "markets", "list")
    assert result.exit_code == 0
    assert "Rain?" in result.output
    assert "Total: 1 markets" in result.output

    result = _invoke(db_path, "history", "show", "1", "--range", "1h")
    assert result.exit_code == 0
    assert "2 points, range 1h" in result.output
    assert "0.3333" in result.output

    assert _invoke(db_path, "markets", "remove", "1").exit_code == 0
    result = _invoke(db_path, "markets", "remove", "1")
    assert result.exit_code == 1
    assert "Market not found" in result.output


def test_add_requires_two_options(db_path):
    result = _invoke(db_path, "markets", "add", "--name", "x", "--address", ADDR, "-o", "Only")
    assert result.exit_code == 1


def test_run_without_package_id_exits(db_path):
    result = runner.invoke(app, ["run"], env={"PREDINDEX_DB_PATH": str(db_path), "PACKAGE_ID": ""})
    assert result.exit_code == 1
    assert "Configuration error" in result.output
