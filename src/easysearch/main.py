import argparse
import asyncio
import json
import sys
from typing import List, Optional, Tuple

from easysearch.core.constants import KEY_CASE_SENSITIVE, KEY_EXCLUDE_ENABLED, KEY_EXCLUDE_PATTERNS
from easysearch.core.engine import SearchEngine
from easysearch.core.errors import SearchFailure
from easysearch.core.models import SearchOptions
from easysearch.core.scheduler.coordinator import RequestCoordinator
from easysearch.core.settings import Settings, settings as global_settings
from easysearch.core.settings_store import JsonFileStore, MemoryStore, SearchHistory
from easysearch.core.utils.logging import configure_logging
from easysearch.core.utils.text import initial_query
from easysearch.core.workspace import normalize_path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="easysearch", description="Literal text search across a workspace.")
    sub = parser.add_subparsers(dest="command")

    p_search = sub.add_parser("search", help="Search files for a literal string")
    p_search.add_argument("query", nargs="?", default=None,
                          help="Literal text to find (default: taken from --from-file)")
    p_search.add_argument("--root", default=".", help="Workspace root (default: current directory)")
    p_search.add_argument("--case-sensitive", action="store_true", default=None)
    p_search.add_argument("--exclude", action="append", default=None, metavar="PATTERN",
                          help="Exclude glob, replacing the saved patterns for this run (repeatable)")
    p_search.add_argument("--no-exclude", action="store_true", help="Index and search without any exclude patterns")
    p_search.add_argument("--current-file", default=None, metavar="PATH", help="Search only this file")
    p_search.add_argument("--json", action="store_true", help="Print matches as JSON")
    p_search.add_argument("--from-file", default=None, metavar="PATH",
                          help="Seed the query from this file when QUERY is omitted")
    p_search.add_argument("--cursor", type=int, default=None, metavar="OFFSET",
                          help="Character offset in --from-file; the word under it becomes the query")
    p_search.add_argument("--selection", default=None, metavar="START:END",
                          help="Character range in --from-file used as the query")

    p_history = sub.add_parser("history", help="Show recent queries")
    p_history.add_argument("--clear", action="store_true")
    return parser


def _session_state(state: JsonFileStore) -> MemoryStore:
    """Copy of the saved search state that per-run overrides may change without persisting."""
    keys = (KEY_CASE_SENSITIVE, KEY_EXCLUDE_PATTERNS, KEY_EXCLUDE_ENABLED)
    return MemoryStore({k: state.get(k) for k in keys if state.get(k) is not None})


def _parse_selection(raw: str) -> Tuple[int, int]:
    start, sep, end = raw.partition(":")
    if not sep:
        raise ValueError(f"expected START:END, got {raw!r}")
    return int(start), int(end)


def _resolve_query(ns: argparse.Namespace) -> str:
    if ns.query is not None:
        return ns.query
    if not ns.from_file:
        return ""
    with open(ns.from_file, "r", encoding="utf-8", errors="replace", newline="") as f:
        text = f.read()
    selection = _parse_selection(ns.selection) if ns.selection else None
    return initial_query(text, selection=selection, cursor=ns.cursor)


async def _run_search(ns: argparse.Namespace, query: str, cfg: Settings, state: JsonFileStore) -> int:
    engine = SearchEngine.for_directory(ns.root, state_store=_session_state(state), cfg=cfg)
    coordinator = RequestCoordinator(engine, SearchHistory(state, limit=cfg.HISTORY_LIMIT))

    # Overrides must reach the index pass, not only the result filter.
    if ns.no_exclude:
        engine.set_exclude_patterns(engine.state.exclude_patterns, enabled=False)
    elif ns.exclude:
        engine.set_exclude_patterns(ns.exclude, enabled=True)

    options = SearchOptions(
        case_sensitive=ns.case_sensitive,
        current_file_only=bool(ns.current_file),
        current_file_document=normalize_path(ns.current_file) if ns.current_file else None,
    )
    try:
        response = await coordinator.search(query, options)
    except SearchFailure as e:
        print(f"[easysearch] {e}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    if response is None:
        return 1
    coordinator.commit_history(query)

    relative = engine.lister.relative_path
    if ns.json:
        rows = []
        for m in response.matches:
            row = m.to_result_dict()
            row["path"] = relative(m.file_identity)
            rows.append(row)
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0
    for m in response.matches:
        print(f"{relative(m.file_identity)}:{m.line_number}:{m.column_range.start + 1}: {m.line_text}")
    return 0


def _run_history(ns: argparse.Namespace, cfg: Settings, state: JsonFileStore) -> int:
    history = SearchHistory(state, limit=cfg.HISTORY_LIMIT)
    if ns.clear:
        history.clear()
        return 0
    for q in history.load():
        print(q)
    return 0


def main(argv: Optional[List[str]] = None, cfg: Optional[Settings] = None) -> int:
    cfg = cfg or global_settings
    configure_logging(cfg)
    parser = _build_parser()
    ns = parser.parse_args(list(sys.argv[1:] if argv is None else argv))
    if not ns.command:
        parser.print_help()
        return 0

    state = JsonFileStore(cfg.STATE_PATH)
    if ns.command == "history":
        return _run_history(ns, cfg, state)
    try:
        query = _resolve_query(ns)
    except (OSError, ValueError) as e:
        parser.error(str(e))
    if not query:
        parser.error("search needs QUERY or --from-file with --cursor/--selection")
    try:
        return asyncio.run(_run_search(ns, query, cfg, state))
    except KeyboardInterrupt:
        return 130
