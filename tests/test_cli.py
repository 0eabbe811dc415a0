import json

import pytest

from conftest import make_settings
from easysearch.main import main


@pytest.fixture
def cli_cfg(tmp_path):
    return make_settings(STATE_PATH=str(tmp_path / "state" / "state.json"), LOG_LEVEL="WARNING")


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.py").write_text("def main():\n    print('Hello')\n", encoding="utf-8")
    (root / "notes.md").write_text("hello notes\n", encoding="utf-8")
    return root


def test_search_prints_relative_matches_and_records_history(project, cli_cfg, capsys):
    rc = main(["search", "hello", "--root", str(project)], cfg=cli_cfg)
    assert rc == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "notes.md:1:1: hello notes",
        "src/app.py:2:12:     print('Hello')",
    ]

    assert main(["history"], cfg=cli_cfg) == 0
    assert capsys.readouterr().out.splitlines() == ["hello"]


def test_search_case_sensitive_json(project, cli_cfg, capsys):
    rc = main(["search", "Hello", "--root", str(project), "--case-sensitive", "--json"], cfg=cli_cfg)
    assert rc == 0
    rows = json.loads(capsys.readouterr().out)
    assert [(r["path"], r["line"], r["start"], r["end"]) for r in rows] == [("src/app.py", 2, 11, 16)]


def test_search_with_exclude_flag(project, cli_cfg, capsys):
    rc = main(["search", "hello", "--root", str(project), "--exclude", "src"], cfg=cli_cfg)
    assert rc == 0
    assert capsys.readouterr().out.splitlines() == ["notes.md:1:1: hello notes"]


def test_current_file_search(project, cli_cfg, capsys):
    rc = main(
        ["search", "hello", "--root", str(project), "--current-file", str(project / "notes.md")],
        cfg=cli_cfg,
    )
    assert rc == 0
    assert capsys.readouterr().out.splitlines() == ["notes.md:1:1: hello notes"]


def test_missing_current_file_fails(project, cli_cfg, capsys):
    rc = main(
        ["search", "hello", "--root", str(project), "--current-file", str(project / "nope.txt")],
        cfg=cli_cfg,
    )
    assert rc == 1
    assert "[easysearch]" in capsys.readouterr().err


def test_history_clear(project, cli_cfg, capsys):
    main(["search", "notes", "--root", str(project)], cfg=cli_cfg)
    capsys.readouterr()
    assert main(["history", "--clear"], cfg=cli_cfg) == 0
    assert main(["history"], cfg=cli_cfg) == 0
    assert capsys.readouterr().out == ""


def test_no_command_prints_help(cli_cfg, capsys):
    assert main([], cfg=cli_cfg) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_no_exclude_indexes_default_excluded_directories(project, cli_cfg, capsys):
    (project / "node_modules").mkdir()
    (project / "node_modules" / "lib.js").write_text("needle here\n", encoding="utf-8")

    assert main(["search", "needle", "--root", str(project)], cfg=cli_cfg) == 0
    assert capsys.readouterr().out == ""

    assert main(["search", "needle", "--root", str(project), "--no-exclude"], cfg=cli_cfg) == 0
    assert capsys.readouterr().out.splitlines() == ["node_modules/lib.js:1:1: needle here"]


def test_exclude_override_is_not_saved(project, cli_cfg, capsys):
    (project / "node_modules").mkdir()
    (project / "node_modules" / "lib.js").write_text("hello dep\n", encoding="utf-8")

    assert main(["search", "hello", "--root", str(project), "--exclude", "src"], cfg=cli_cfg) == 0
    out = capsys.readouterr().out.splitlines()
    # Root files are listed before subdirectories.
    assert out == ["notes.md:1:1: hello notes", "node_modules/lib.js:1:1: hello dep"]

    state = json.loads(open(cli_cfg.STATE_PATH, encoding="utf-8").read())
    assert "search.excludePatterns" not in state
    assert state["search.history"] == ["hello"]


def test_query_from_word_under_cursor(project, cli_cfg, capsys):
    source = project / "src" / "app.py"
    rc = main(
        ["search", "--root", str(project), "--from-file", str(source), "--cursor", "6"],
        cfg=cli_cfg,
    )
    assert rc == 0
    assert capsys.readouterr().out.splitlines() == ["src/app.py:1:5: def main():"]


def test_query_from_selection(project, cli_cfg, capsys):
    source = project / "src" / "app.py"
    rc = main(
        ["search", "--root", str(project), "--from-file", str(source), "--selection", "23:28", "--case-sensitive"],
        cfg=cli_cfg,
    )
    assert rc == 0
    assert capsys.readouterr().out.splitlines() == ["src/app.py:2:12:     print('Hello')"]


def test_search_without_query_source_is_usage_error(project, cli_cfg):
    with pytest.raises(SystemExit) as exc:
        main(["search", "--root", str(project)], cfg=cli_cfg)
    assert exc.value.code == 2
