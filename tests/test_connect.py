"""Tests for the interactive shell session launcher."""

from unittest.mock import MagicMock, patch

import pytest

from ssm_bastion.config import SessionConfig
from ssm_bastion.exceptions import SessionError
from ssm_bastion.session.connect import shell_session_args, start_shell_session


class TestShellSessionArgs:
    def test_without_profile(self):
        assert shell_session_args("i-1", "us-east-1") == [
            "ssm", "start-session", "--target", "i-1", "--region", "us-east-1",
        ]

    def test_with_profile(self):
        assert shell_session_args("i-1", "us-east-1", "ops")[:2] == ["--profile", "ops"]


class TestStartShellSession:
    def test_hands_off_to_controller(self):
        controller = MagicMock()
        controller.exec_or_spawn.return_value = 0
        with patch("ssm_bastion.session.connect.shutil.which", return_value="/usr/bin/aws"):
            rc = start_shell_session(
                "i-1", "us-east-1", SessionConfig(), controller=controller, env={"A": "1"},
            )
        assert rc == 0
        controller.exec_or_spawn.assert_called_once_with(
            "/usr/bin/aws",
            ["ssm", "start-session", "--target", "i-1", "--region", "us-east-1"],
            {"A": "1"},
        )

    def test_missing_cli(self):
        with patch("ssm_bastion.session.connect.shutil.which", return_value=None):
            with pytest.raises(SessionError, match="on PATH"):
                start_shell_session("i-1", "us-east-1", SessionConfig(), controller=MagicMock())

    def test_nonzero_exit(self):
        controller = MagicMock()
        controller.exec_or_spawn.return_value = 2
        with patch("ssm_bastion.session.connect.shutil.which", return_value="aws"):
            with pytest.raises(SessionError) as exc_info:
                start_shell_session("i-1", "us-east-1", SessionConfig(), controller=controller)
        assert exc_info.value.exit_code == 2

    def test_exec_failure(self):
        controller = MagicMock()
        controller.exec_or_spawn.side_effect = PermissionError("denied")
        with patch("ssm_bastion.session.connect.shutil.which", return_value="aws"):
            with pytest.raises(SessionError, match="denied"):
                start_shell_session("i-1", "us-east-1", SessionConfig(), controller=controller)
