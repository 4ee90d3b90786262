"""Interactive shell session to an instance."""

from __future__ import annotations

import logging
import os
import shutil

from ..config import SessionConfig
from ..exceptions import SessionError
from .process import ProcessController, get_process_controller

logger = logging.getLogger(__name__)


def shell_session_args(instance_id: str, region: str, profile: str = "") -> list[str]:
    args: list[str] = []
    if profile:
        args += ["--profile", profile]
    args += ["ssm", "start-session", "--target", instance_id, "--region", region]
    return args


def start_shell_session(
    instance_id: str,
    region: str,
    session_config: SessionConfig,
    profile: str = "",
    controller: ProcessController | None = None,
    env: dict[str, str] | None = None,
) -> int:
    """Hand the terminal to ``aws ssm start-session``.

    On POSIX the current process is replaced and this never returns on
    success. Elsewhere the client runs to completion and its exit code is
    returned.
    """
    binary = shutil.which(session_config.aws_cli)
    if binary is None:
        raise SessionError(f"Failed to find {session_config.aws_cli!r} on PATH")

    controller = controller or get_process_controller()
    args = shell_session_args(instance_id, region, profile)
    logger.debug("Starting SSM session: %s %s", binary, " ".join(args))

    try:
        returncode = controller.exec_or_spawn(binary, args, env if env is not None else dict(os.environ))
    except OSError as exc:
        raise SessionError(f"Failed to start SSM session: {exc}") from exc

    if returncode != 0:
        raise SessionError(f"SSM session exited with code {returncode}", exit_code=returncode)
    return returncode
