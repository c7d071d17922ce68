"""
.. include:: ../README.md
"""

__all__ = [
    "compat",
    "exceptions",
    "model",
    "resolver",
    "timezoneinfo",
    "tz_rule",
    "tzif",
]
