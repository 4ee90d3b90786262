"""Port-forward session through a bastion, with keep-alive pings and signal handling."""

from __future__ import annotations

import json
import logging
import signal
import subprocess
import threading
from types import FrameType
from typing import Any

from ..config import SessionConfig
from ..exceptions import SessionError
from .network import tcp_ping
from .process import ProcessController, get_process_controller

logger = logging.getLogger(__name__)

PORT_FORWARD_DOCUMENT = "AWS-StartPortForwardingSessionToRemoteHost"


class PortForwardSession:
    """Runs ``aws ssm start-session`` with the remote-host port forwarding document.

    The session client inherits the terminal. While it runs, a background
    thread opens a TCP connection to the local end of the tunnel every
    ``ping_interval_seconds`` so that SSM does not close it as idle.
    SIGINT/SIGTERM terminate the client and end the session.
    """

    def __init__(
        self,
        instance_id: str,
        host: str,
        remote_port: int,
        local_port: int,
        region: str,
        session_config: SessionConfig,
        profile: str = "",
        controller: ProcessController | None = None,
    ):
        self._instance_id = instance_id
        self._host = host
        self._remote_port = remote_port
        self._local_port = local_port
        self._region = region
        self._config = session_config
        self._profile = profile
        self._controller = controller or get_process_controller()
        self._process: subprocess.Popen | None = None
        self._stop = threading.Event()
        self._terminated = False

    def command(self) -> list[str]:
        parameters = {
            "host": [self._host],
            "portNumber": [str(self._remote_port)],
            "localPortNumber": [str(self._local_port)],
        }
        cmd = [self._config.aws_cli]
        if self._profile:
            cmd += ["--profile", self._profile]
        cmd += [
            "ssm", "start-session",
            "--target", self._instance_id,
            "--document-name", PORT_FORWARD_DOCUMENT,
            "--parameters", json.dumps(parameters, separators=(",", ":")),
            "--region", self._region,
        ]
        return cmd

    def run(self) -> None:
        """Start the session and block until it ends. Raises SessionError on failure."""
        cmd = self.command()
        logger.debug("Starting port forwarding session: %s", " ".join(cmd))

        previous = self._install_signal_handlers()
        keepalive = threading.Thread(target=self._keepalive, name="tcp-ping", daemon=True)
        try:
            try:
                self._process = subprocess.Popen(cmd, **self._controller.configure({}))
            except OSError as exc:
                raise SessionError(f"Failed to start port forwarding: {exc}") from exc
            if self._terminated:
                # signal arrived before the child existed
                self._controller.terminate(self._process)

            logger.info(
                "Forwarding localhost:%d -> %s:%d via %s",
                self._local_port, self._host, self._remote_port, self._instance_id,
                extra={"instance_id": self._instance_id, "local_port": self._local_port},
            )
            keepalive.start()
            returncode = self._process.wait()
        finally:
            self._stop.set()
            if keepalive.is_alive():
                keepalive.join(timeout=1.0)
            self._restore_signal_handlers(previous)

        if self._terminated:
            raise SessionError("Port forwarding session terminated by signal", exit_code=returncode)
        if returncode != 0:
            raise SessionError(
                f"Port forwarding session failed with exit code {returncode}",
                exit_code=returncode,
            )
        logger.debug("Port forwarding session completed", extra={"exit_code": returncode})

    def stop(self) -> None:
        """Terminate the session client, if running."""
        self._terminated = True
        self._stop.set()
        if self._process is not None:
            self._controller.terminate(self._process)

    # ── Keep-alive ───────────────────────────────────────────────────

    def _keepalive(self) -> None:
        if self._stop.wait(self._config.ping_initial_delay_seconds):
            return
        logger.debug("TCP ping started, interval %ss", self._config.ping_interval_seconds)
        while not self._stop.wait(self._config.ping_interval_seconds):
            if tcp_ping("localhost", self._local_port, self._config.ping_timeout_seconds):
                logger.debug("TCP ping to localhost:%d successful", self._local_port)
            else:
                logger.debug("TCP ping to localhost:%d failed", self._local_port)
        logger.debug("TCP ping stopped")

    # ── Signals ──────────────────────────────────────────────────────

    def _install_signal_handlers(self) -> dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}
        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, self._handle_shutdown)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: dict[int, Any]) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, terminating session", sig_name)
        self.stop()
