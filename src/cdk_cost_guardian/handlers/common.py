"""Helpers shared by the CI entry points."""

from __future__ import annotations

import logging
import os
import sys
import uuid
from pathlib import Path


def configure_logging(verbose: bool = False) -> None:
    """Log to stderr; stdout carries the command's JSON or markdown output."""
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def read_text_arg(value: str) -> str:
    """
    Resolve a CLI document argument.

    ``-`` reads stdin, ``@path`` reads a file, anything else is the document itself.
    """
    if value == "-":
        return sys.stdin.read()
    if value.startswith("@"):
        return Path(value[1:]).read_text()
    return value


def write_github_output(
    name: str,
    value: str,
    output_path: str | Path | None = None,
) -> bool:
    """
    Append a step output for GitHub Actions.

    Multi-line values use the heredoc form with a random delimiter so the
    value cannot terminate it early.

    Args:
        name: Output name.
        value: Output value.
        output_path: Output file. Defaults to $GITHUB_OUTPUT.

    Returns:
        True if written, False when not running under GitHub Actions.
    """
    output_path = output_path or os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return False

    with open(output_path, "a", encoding="utf-8") as f:
        if "\n" in value:
            delimiter = f"EOF_{uuid.uuid4().hex}"
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            f.write(f"{name}={value}\n")
    return True
