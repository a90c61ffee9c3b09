"""Output styling for the sso-broker CLI.

Labels are cyan bold, success green with a checkmark, errors red with a
cross, warnings yellow.
"""

from __future__ import annotations

__all__ = [
    "style_dim",
    "style_error",
    "style_label",
    "style_success",
    "style_warning",
]

import click


def style_label(label: str) -> str:
    """'Service:' in cyan bold, for `label value` summary lines."""
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    return click.style(f"✓ {message}", fg="green")


def style_error(message: str) -> str:
    """Red, prefixed with ✗. Echo it with err=True."""
    return click.style(f"✗ {message}", fg="red")


def style_dim(message: str) -> str:
    return click.style(message, dim=True)


def style_warning(message: str) -> str:
    return click.style(f"Warning: {message}", fg="yellow", bold=True)
