"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

No I/O, no subprocess. Safe to call from anywhere.
"""

from copperbuild.core.services.deps.domain.link_names import (  # noqa: F401
    library_name,
    unique_library_names,
)
from copperbuild.core.services.deps.domain.platform import (  # noqa: F401
    default_generator,
    default_managed_root,
    detect_host,
    glue_output_dirs,
    library_search_var,
    link_extension,
    path_separator,
)
