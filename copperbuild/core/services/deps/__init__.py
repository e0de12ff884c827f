"""
Native backend resolution service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → detection → execution →
resolver → orchestration)::

    from copperbuild.core.services.deps import ResolutionChain, BuildOrchestrator
"""

# ── L0: Data ──
from copperbuild.core.services.deps.data.backends import BACKENDS, get_backend  # noqa: F401

# ── L3: Detection ──
from copperbuild.core.services.deps.detection.prefix_validator import (  # noqa: F401
    inspect_prefix,
    is_valid,
)

# ── L4: Execution ──
from copperbuild.core.services.deps.execution.archive import (  # noqa: F401
    extract,
    sniff,
)
from copperbuild.core.services.deps.execution.download import download  # noqa: F401
from copperbuild.core.services.deps.execution.install import install  # noqa: F401

# ── L2: Resolver ──
from copperbuild.core.services.deps.resolver.resolution_chain import (  # noqa: F401
    ResolutionChain,
)

# ── L5: Orchestration ──
from copperbuild.core.services.deps.orchestration.orchestrator import (  # noqa: F401
    BuildOrchestrator,
)
