from __future__ import annotations

from typing import Optional

_CLOSERS = {"[": "]", "{": "}"}


def extract_json_span(text: str, opener: str = "[") -> Optional[str]:
    """
    Return the first balanced `[...]` or `{...}` span in free-form model output.

    Depth counts only `opener` and its matching closer; brackets inside JSON
    string literals are ignored. Returns None when no opener exists or the
    span never closes (truncated output).
    """
    if opener not in _CLOSERS:
        raise ValueError(f"unsupported opener: {opener!r}")
    if not text:
        return None
    closer = _CLOSERS[opener]
    s = str(text)
    start = s.find(opener)
    if start < 0:
        return None
    depth = 0
    in_str = False
    esc = False
    for i in range(start, len(s)):
        ch = s[i]
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return s[start : i + 1]
    return None
