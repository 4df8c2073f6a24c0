"""gnucash_backup package initialization.

Single source of truth for the tool name + package version so that code, tests,
and scripts can import without duplicating literals.
"""

TOOL_NAME = "gnucash-backup"
PACKAGE_VERSION = "1.0.0"  # Keep in sync with pyproject version.

__all__ = ["TOOL_NAME", "PACKAGE_VERSION"]
