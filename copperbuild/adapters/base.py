"""
Adapter base — the contract between the orchestrator and external tools.

The orchestrator only talks to the native build tool through this
interface, so tests can substitute a scripted tool without touching
the real one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from copperbuild.core.models.action import Action, Receipt


class Adapter(ABC):
    """Abstract base class for external tool adapters.

    Adapters perform side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'cmake')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool can be found. Fast, never raises."""

    @abstractmethod
    def execute(self, action: Action) -> Receipt:
        """Run the action and return a receipt. MUST never raise."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
