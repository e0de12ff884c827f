"""
CMake adapter — run the native build tool and capture what it says.

Output is captured (stderr folded into stdout) instead of streamed so
the orchestrator can search configure failures for dependency-not-found
signatures. The captured text is always logged at DEBUG, and on
failure it travels with the Receipt.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

from copperbuild.adapters.base import Adapter
from copperbuild.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)

# Keep receipts bounded; CMake can be very chatty on large builds
_MAX_OUTPUT = 20000


def _tail(text: str) -> str:
    return text[-_MAX_OUTPUT:] if text else ""


class CMakeAdapter(Adapter):
    """Invoke ``cmake`` with an Action's args, env overrides and cwd."""

    def __init__(self, executable: str = "cmake"):
        self._executable = executable

    @property
    def name(self) -> str:
        return "cmake"

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    def execute(self, action: Action) -> Receipt:
        cmd = [self._executable, *action.args]
        env = os.environ.copy()
        env.update(action.env)

        logger.info("Running: %s", " ".join(cmd))
        start = time.monotonic()

        try:
            result = subprocess.run(
                cmd,
                cwd=action.cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=action.timeout,
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"{self._executable} not found on PATH",
                metadata={"command": cmd},
            )
        except subprocess.TimeoutExpired as e:
            output = e.stdout if isinstance(e.stdout, str) else ""
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command timed out after {action.timeout}s",
                output=_tail(output),
                metadata={"command": cmd, "timeout": action.timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command execution error: {e}",
                metadata={"command": cmd},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout or ""
        logger.debug("%s output:\n%s", action.id, output)

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                output=_tail(output),
                returncode=0,
                duration_ms=elapsed_ms,
                metadata={"command": cmd},
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=action.id,
            error=f"cmake {action.id} exited with code {result.returncode}",
            output=_tail(output),
            returncode=result.returncode,
            duration_ms=elapsed_ms,
            metadata={"command": cmd},
        )
