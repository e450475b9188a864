from __future__ import annotations

from typing import Iterable

LIST_KEY_PREFIX = "lists/"
LIST_KEY_SUFFIX = ".txt"


def list_key(list_name: str) -> str:
    return f"{LIST_KEY_PREFIX}{list_name}{LIST_KEY_SUFFIX}"


def is_blank(line: str) -> bool:
    return not line or not line.strip()


def parse_lines(blob: str) -> list[str]:
    # Blank lines are never stored, but objects edited outside the bot may carry them.
    if not blob:
        return []
    return [line for line in blob.split("\n") if not is_blank(line)]


def serialize_lines(lines: Iterable[str]) -> str:
    kept = [line for line in lines if not is_blank(line)]
    if not kept:
        return ""
    return "\n".join(kept) + "\n"


def numbered_lines(lines: Iterable[str]) -> str:
    return "".join(f"{index}: {line}\n" for index, line in enumerate(lines, start=1))
