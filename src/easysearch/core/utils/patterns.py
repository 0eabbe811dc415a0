import re
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

_MAX_BRACE_EXPANSION = 1000


def expand_braces(pattern: str) -> List[str]:
    """
    Expands brace patterns in a glob string.
    For example, "*.{js,ts}" becomes ["*.js", "*.ts"].
    """
    patterns = [pattern]
    while any("{" in p for p in patterns):
        if len(patterns) > _MAX_BRACE_EXPANSION:
            break
        new_patterns = []
        progressed = False
        for p in patterns:
            match = re.search(r"\{([^{}]*)\}", p)
            if match:
                progressed = True
                prefix = p[:match.start()]
                suffix = p[match.end():]
                for option in match.group(1).split(","):
                    new_patterns.append(f"{prefix}{option}{suffix}")
                    if len(new_patterns) > _MAX_BRACE_EXPANSION:
                        return patterns  # Fallback to partially expanded
            else:
                new_patterns.append(p)
        patterns = new_patterns
        if not progressed:
            break
    return patterns


def glob_to_regex(pattern: str) -> str:
    """
    Translate one exclude glob into a segment-aware regex fragment.

    ``*`` and ``?`` stay inside a path segment, ``**`` crosses segments.
    Leading ``**/`` and trailing ``/**`` are implied by matching at segment
    boundaries, so "node_modules", "**/node_modules/**" and "node_modules/"
    are equivalent.
    """
    pat = pattern.strip().replace("\\", "/")
    while pat.startswith("**/"):
        pat = pat[3:]
    while pat.endswith("/**"):
        pat = pat[:-3]
    pat = pat.strip("/")
    if pat.startswith("./"):
        pat = pat[2:]

    out = []
    i = 0
    n = len(pat)
    while i < n:
        ch = pat[i]
        if ch == "*":
            if i + 1 < n and pat[i + 1] == "*":
                # "**/" may also match zero directories
                if i + 2 < n and pat[i + 2] == "/":
                    out.append("(?:.*/)?")
                    i += 3
                    continue
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pat.find("]", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                body = pat[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
                i = end + 1
                continue
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


@lru_cache(maxsize=256)
def _compile(patterns: Tuple[str, ...]) -> Optional[re.Pattern]:
    regex_parts = []
    for raw in patterns:
        for pat in expand_braces(raw):
            body = glob_to_regex(pat)
            if not body:
                continue
            regex_parts.append(f"(?:^|/){body}(?:/|$)")
    if not regex_parts:
        return None
    return re.compile("|".join(regex_parts), re.IGNORECASE)


class ExcludeMatcher:
    """Case-insensitive matcher for a set of exclude globs against file paths."""

    def __init__(self, patterns: Iterable[str]):
        cleaned = tuple(p.strip() for p in patterns if p and p.strip())
        self.patterns = cleaned
        self._regex = _compile(cleaned)

    def __bool__(self) -> bool:
        return self._regex is not None

    def matches(self, path: str) -> bool:
        if self._regex is None:
            return False
        norm = str(path or "").replace("\\", "/")
        return self._regex.search(norm) is not None
