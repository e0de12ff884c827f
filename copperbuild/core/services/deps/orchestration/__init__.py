"""
L5 Orchestration — ``__init__.py`` re-exports the build orchestrator.
"""

from copperbuild.core.services.deps.orchestration.orchestrator import (  # noqa: F401
    BuildOrchestrator,
    match_signatures,
)
