"""Creation and management of small named lists of text lines.

Each list lives in the store as one text object (see list_codec). Every
operation takes the list name as its first argument, never raises, and reports
an OperationResult. Mutating operations read, edit and write the whole object
without any conditional write, so the last writer wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Union

import list_store
from list_codec import is_blank
from list_codec import list_key
from list_codec import numbered_lines
from list_codec import parse_lines
from list_codec import serialize_lines

SUCCESS = "Success"
USER_ERROR = "User Error"
SYSTEM_ERROR = "System Error"

END_OF_LIST = "~"

_DIGITS = re.compile(r"^\d+$")


@dataclass(frozen=True)
class OperationResult:
    outcome: str
    message: str

    @property
    def ok(self) -> bool:
        return self.outcome == SUCCESS


Operation = Callable[..., OperationResult]


def _success(message: str) -> OperationResult:
    return OperationResult(SUCCESS, message)


def _user_error(message: str) -> OperationResult:
    return OperationResult(USER_ERROR, message)


@dataclass(frozen=True)
class DeleteLine:
    # None targets the last line of the list as read.
    index: int | None


@dataclass(frozen=True)
class OverwriteLine:
    index: int | None
    text: str


ReplaceAction = Union[DeleteLine, OverwriteLine]


def is_number_string(value: str) -> bool:
    return bool(_DIGITS.match(value))


def _check_name_only(args: tuple[str, ...]) -> OperationResult | None:
    if len(args) < 1:
        return _user_error("List name not given.")
    if len(args) > 1:
        return _user_error("Too many arguments supplied.")
    return None


def list_make(*args: str) -> OperationResult:
    err = _check_name_only(args)
    if err:
        return err
    list_name = args[0]

    try:
        list_store.put(list_key(list_name), serialize_lines([]))
    except list_store.ListStoreError:
        return _user_error(f"Could not create list {list_name}.")

    return _success(f"{list_name}: created list.")


def list_print(*args: str) -> OperationResult:
    err = _check_name_only(args)
    if err:
        return err
    list_name = args[0]

    try:
        lines = parse_lines(list_store.get(list_key(list_name)))
    except list_store.ListNotFoundError:
        return _user_error(f"Could not find list {list_name}.")
    except list_store.ListStoreError:
        return _user_error(f"Could not read list {list_name}.")

    return _success(numbered_lines(lines) + END_OF_LIST + "\n")


def list_append(*args: str) -> OperationResult:
    if len(args) < 1:
        return _user_error("List name not given.")
    list_name = args[0]
    new_lines = [line for line in args[1:] if not is_blank(line)]

    key = list_key(list_name)
    try:
        lines = parse_lines(list_store.get(key))
        lines.extend(new_lines)
        list_store.put(key, serialize_lines(lines))
    except list_store.ListNotFoundError:
        return _user_error(f"Could not find list {list_name}.")
    except list_store.ListStoreError:
        return _user_error(f"Could not append list {list_name}.")

    count = len(new_lines)
    noun = "line" if count == 1 else "lines"
    return _success(f"{list_name}: added {count} {noun}.")


def parse_replace_action(extra: tuple[str, ...]) -> tuple[ReplaceAction | None, str | None]:
    """Decide what a replace request does from the arguments after the list name.

    No argument deletes the last line. A single all-digit argument deletes
    that 1-based line, any other single argument overwrites the last line.
    Two arguments are a 1-based index and its replacement text. A line made
    only of digits therefore cannot be written with the single argument form.
    """
    if len(extra) == 0:
        return DeleteLine(None), None
    if len(extra) == 1:
        if not is_number_string(extra[0]):
            return OverwriteLine(None, extra[0]), None
        index = _line_index(extra[0])
        if index is None:
            return None, "Invalid replace line index."
        return DeleteLine(index), None
    if len(extra) == 2:
        index = _line_index(extra[0])
        if index is None:
            return None, "Invalid replace line index."
        return OverwriteLine(index, extra[1]), None
    return None, "Too many arguments supplied."


def _line_index(value: str) -> int | None:
    if not is_number_string(value):
        return None
    try:
        return int(value)
    except ValueError:
        # int() refuses digit strings past sys.get_int_max_str_digits().
        return None


def apply_replace(lines: list[str], action: ReplaceAction) -> tuple[list[str] | None, int]:
    """Return the edited copy of ``lines`` and the resolved 1-based index.

    The edited copy is None when the index falls outside the list.
    """
    index = action.index if action.index is not None else len(lines)
    if index < 1 or index > len(lines):
        return None, index

    edited = list(lines)
    if isinstance(action, OverwriteLine) and not is_blank(action.text):
        edited[index - 1] = action.text
    else:
        del edited[index - 1]
    return edited, index


def list_replace(*args: str) -> OperationResult:
    if len(args) < 1:
        return _user_error("List name not given.")
    list_name = args[0]

    action, err = parse_replace_action(tuple(args[1:]))
    if err:
        return _user_error(err)
    assert action is not None

    key = list_key(list_name)
    try:
        lines = parse_lines(list_store.get(key))
        edited, index = apply_replace(lines, action)
        if edited is None:
            return _user_error("Invalid replace line index.")
        list_store.put(key, serialize_lines(edited))
    except list_store.ListNotFoundError:
        return _user_error(f"Could not find list {list_name}.")
    except list_store.ListStoreError:
        return _user_error(f"Could not replace line in list {list_name}.")

    if isinstance(action, OverwriteLine) and not is_blank(action.text):
        return _success(f"{list_name}: replaced line {index} with {action.text}")
    return _success(f"{list_name}: deleted line {index}")
