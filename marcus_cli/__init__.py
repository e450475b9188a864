"""Operator CLI for running list commands without going through SMS.

The command surface is implemented with Typer and Rich, sharing the command
parser and list operations that the SMS resolver Lambda runs.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
