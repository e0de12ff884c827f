"""
L2 Resolver — ``__init__.py`` re-exports the resolution chain.
"""

from copperbuild.core.services.deps.resolver.resolution_chain import (  # noqa: F401
    ResolutionChain,
)
