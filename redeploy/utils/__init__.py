"""Utility modules for redeploy."""

from .output import print_status, print_warning, print_error, print_diagnostics

__all__ = [
    "print_status",
    "print_warning",
    "print_error",
    "print_diagnostics",
]
