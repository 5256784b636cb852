"""
Order Intake – adaptive extraction of structured orders from pasted text.

Shared utilities (config, logging, paths, domain models) live at the package
root; the extraction pipeline lives in `order_intake.intake`.
"""

__all__ = [
    "config",
    "errors",
    "logging",
    "paths",
]
