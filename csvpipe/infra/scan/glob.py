from __future__ import annotations

import re
from functools import lru_cache


def normalize_relative(path: str) -> str:
    """
    Назначение:
        Приводит относительный путь/шаблон к POSIX-виду без ведущего "./".
    """
    value = path.replace("\\", "/")
    while value.startswith("./"):
        value = value[2:]
    return value


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """
    Назначение:
        Компилирует glob-шаблон в регулярное выражение для относительных путей.

    Алгоритм:
        - "**/": ноль или более сегментов пути; "**" в остальных местах:
          любые символы, включая "/".
        - "*": любые символы внутри одного сегмента.
        - "?": один символ, кроме "/".
        - "[...]": класс символов ("[!...]": отрицание).
        - Остальное: литералы.
    """
    if not pattern or pattern.strip() == "":
        raise ValueError("Glob pattern must not be empty")
    source = normalize_relative(pattern)
    out: list[str] = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "*":
            if i + 1 < n and source[i + 1] == "*":
                if i + 2 < n and source[i + 2] == "/":
                    out.append("(?:.*/)?")
                    i += 3
                else:
                    out.append(".*")
                    i += 2
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            negated = i + 1 < n and source[i + 1] in "!^"
            end = source.find("]", i + 2 if negated else i + 1)
            body = source[i + 1 : end] if end != -1 else ""
            if end == -1 or body in ("", "!", "^"):
                out.append(re.escape(ch))
            else:
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out) + r"\Z", re.DOTALL)


def glob_matches(pattern: str, relative_path: str) -> bool:
    return compile_glob(pattern).match(normalize_relative(relative_path)) is not None


__all__ = ["compile_glob", "glob_matches", "normalize_relative"]
