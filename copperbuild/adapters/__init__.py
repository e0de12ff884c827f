"""Adapters — bindings for external tools and environment persistence.

Public re-exports for convenient access.
"""

from copperbuild.adapters.base import Adapter
from copperbuild.adapters.cmake import CMakeAdapter
from copperbuild.adapters.env_store import (
    EnvironmentStore,
    ProcessEnvironmentStore,
    ProfileEnvironmentStore,
    WindowsEnvironmentStore,
    default_store,
)
from copperbuild.adapters.mock import MockAdapter

__all__ = [
    "Adapter",
    "CMakeAdapter",
    "EnvironmentStore",
    "MockAdapter",
    "ProcessEnvironmentStore",
    "ProfileEnvironmentStore",
    "WindowsEnvironmentStore",
    "default_store",
]
