"""
L0 Data — ``__init__.py`` re-exports all data constants.
"""

from copperbuild.core.services.deps.data.backends import (  # noqa: F401
    BACKENDS,
    LIBTORCH,
    TENSORFLOW,
    ArchiveSource,
    BackendSpec,
    get_backend,
)
from copperbuild.core.services.deps.data.constants import (  # noqa: F401
    _IARCH_MAP,
    _OS_MAP,
    LINK_EXTENSIONS,
)
