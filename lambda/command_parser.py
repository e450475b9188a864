"""Terse command language for SMS input.

A message looks like ``lr,groceries,2,eggs``: the first comma-separated segment
names the command (one character) and an optional subcommand (a second
character), every following segment is an argument. Commas cannot be escaped.
"""

from __future__ import annotations

from dataclasses import dataclass

from list_ops import SYSTEM_ERROR
from list_ops import USER_ERROR
from list_ops import Operation
from list_ops import OperationResult
from list_ops import list_append
from list_ops import list_make
from list_ops import list_print
from list_ops import list_replace

FIELD_SEPARATOR = ","

COMMAND = "Command"
SUBCOMMAND = "Subcommand"
ARGUMENT = "Argument"

OPERATIONS: dict[tuple[str, str | None], Operation] = {
    ("l", "a"): list_append,
    ("l", "m"): list_make,
    ("l", "p"): list_print,
    ("l", "r"): list_replace,
}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str

    def __str__(self) -> str:
        return f"[{self.kind}:{self.text}]"


@dataclass(frozen=True)
class Command:
    operation: Operation
    args: tuple[str, ...]

    def run(self) -> OperationResult:
        return self.operation(*self.args)


def tokenize(text: str) -> tuple[list[Token] | None, str | None]:
    segments = str(text or "").split(FIELD_SEPARATOR)

    head = segments[0].strip().lower()
    if not head:
        return None, "Missing first segment."
    if len(head) > 2:
        return None, "First segment too long."

    tokens = [Token(COMMAND, head[0])]
    if len(head) == 2:
        tokens.append(Token(SUBCOMMAND, head[1]))
    tokens.extend(Token(ARGUMENT, segment.strip()) for segment in segments[1:])
    return tokens, None


def resolve(tokens: list[Token]) -> tuple[Command | None, str | None]:
    if not tokens:
        return None, "No command token."

    command_token = tokens[0]
    if command_token.kind != COMMAND:
        return None, "First token wasn't command token."
    rest = tokens[1:]

    subcommand = None
    if rest and rest[0].kind == SUBCOMMAND:
        subcommand = rest[0].text
        rest = rest[1:]

    args: list[str] = []
    for token in rest:
        if token.kind != ARGUMENT:
            return None, "Non-argument type token found among trailing tokens."
        args.append(token.text)

    operation = OPERATIONS.get((command_token.text, subcommand))
    if operation is None:
        return None, "Operation not found. You tried an invalid command."

    return Command(operation=operation, args=tuple(args)), None


def evaluate(text: str) -> OperationResult:
    tokens, err = tokenize(text)
    if err:
        return OperationResult(USER_ERROR, f"Error parsing tokens: {err}")
    assert tokens is not None

    command, err = resolve(tokens)
    if err:
        return OperationResult(USER_ERROR, f"Error parsing command: {err}")
    assert command is not None

    try:
        return command.run()
    except Exception as e:
        return OperationResult(SYSTEM_ERROR, f"Uncaught error when running command: {e}")
