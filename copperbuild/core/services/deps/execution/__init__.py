"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE to the system: network downloads, archive
extraction, directory moves, environment variables, file copies.
"""

from copperbuild.core.services.deps.execution.archive import (  # noqa: F401
    check_family,
    extract,
    sniff,
    sniff_bytes,
)
from copperbuild.core.services.deps.execution.download import (  # noqa: F401
    download,
)
from copperbuild.core.services.deps.execution.environment import (  # noqa: F401
    configure_environment,
)
from copperbuild.core.services.deps.execution.install import (  # noqa: F401
    find_payload_root,
    install,
    normalize_import_libraries,
)
from copperbuild.core.services.deps.execution.link_emission import (  # noqa: F401
    build_link_plan,
    scan_directory,
)
from copperbuild.core.services.deps.execution.runtime_image import (  # noqa: F401
    populate_runtime_image,
    resolve_runtime_dir,
)
