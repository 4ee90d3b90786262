"""Per-platform control of the session client subprocess."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from typing import Any, Protocol, Sequence

logger = logging.getLogger(__name__)


class ProcessController(Protocol):
    """How the session client is started, stopped and handed the terminal."""

    def configure(self, popen_kwargs: dict[str, Any]) -> dict[str, Any]:
        ...

    def terminate(self, process: subprocess.Popen) -> None:
        ...

    def exec_or_spawn(self, binary: str, args: Sequence[str], env: dict[str, str]) -> int:
        ...


class PosixProcessController:
    """Runs the child in its own process group so the whole group can be signalled."""

    def configure(self, popen_kwargs: dict[str, Any]) -> dict[str, Any]:
        return {**popen_kwargs, "start_new_session": True}

    def terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            logger.debug("Process group %d already gone", process.pid)

    def exec_or_spawn(self, binary: str, args: Sequence[str], env: dict[str, str]) -> int:
        """Replace the current process with the session client. Only returns on failure."""
        argv = [os.path.basename(binary), *args]
        logger.debug("exec %s %s", binary, " ".join(args))
        os.execve(binary, argv, env)
        return 0  # pragma: no cover


class WindowsProcessController:
    """No process groups; the session client runs as a blocking child."""

    def configure(self, popen_kwargs: dict[str, Any]) -> dict[str, Any]:
        return dict(popen_kwargs)

    def terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is None:
            process.kill()

    def exec_or_spawn(self, binary: str, args: Sequence[str], env: dict[str, str]) -> int:
        logger.debug("spawn %s %s", binary, " ".join(args))
        completed = subprocess.run([binary, *args], env=env)
        return completed.returncode


def get_process_controller() -> ProcessController:
    if os.name == "nt":
        return WindowsProcessController()
    return PosixProcessController()
