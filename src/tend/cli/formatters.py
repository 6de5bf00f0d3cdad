"""Output helpers for CLI commands."""

from __future__ import annotations

import json
import sys
from typing import Any


def print_json(data: Any) -> None:
    """Print data as JSON."""
    print(json.dumps(data, indent=2, default=str))


def print_success(message: str) -> None:
    print(f"[+] {message}")


def print_error(message: str) -> None:
    print(f"[!] {message}", file=sys.stderr)


def print_info(message: str) -> None:
    print(f"[*] {message}")
