"""
Mock adapter — scripted stand-in for the native build tool.

Returns queued receipts per action id (falling back to success) and
can run a hook on each call, e.g. to drop a fake compiled library
into the build directory the way a real build would.
"""

from __future__ import annotations

from collections.abc import Callable

from copperbuild.adapters.base import Adapter
from copperbuild.core.models.action import Action, Receipt


class MockAdapter(Adapter):
    """Scripted adapter for tests and dry runs."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        on_execute: Callable[[Action], None] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._on_execute = on_execute
        self._responses: dict[str, list[Receipt]] = {}
        self._call_log: list[Action] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[Action]:
        """Every action this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, action_id: str) -> list[Action]:
        return [a for a in self._call_log if a.id == action_id]

    def is_available(self) -> bool:
        return self._available

    def queue_failure(self, action_id: str, output: str = "", error: str = "Mock failure") -> None:
        """Make the next call for ``action_id`` fail with ``output``."""
        self._responses.setdefault(action_id, []).append(
            Receipt.failure(
                adapter=self._name,
                action_id=action_id,
                error=error,
                output=output,
                returncode=1,
            )
        )

    def execute(self, action: Action) -> Receipt:
        self._call_log.append(action)
        if self._on_execute is not None:
            self._on_execute(action)

        queued = self._responses.get(action.id)
        if queued:
            return queued.pop(0)

        return Receipt.success(
            adapter=self._name,
            action_id=action.id,
            output=f"[mock] {action.id} ok",
            returncode=0,
        )
