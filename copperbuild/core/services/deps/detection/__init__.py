"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

Read-only probes. No writes, no network.
"""

from copperbuild.core.services.deps.detection.prefix_validator import (  # noqa: F401
    inspect_prefix,
    is_valid,
)
