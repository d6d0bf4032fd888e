"""Unit tests for tool input models."""

import pytest
from pydantic import ValidationError

from ssh_mcp.models import (
    ConnectInput,
    CopyFileInput,
    DockerDeployInput,
    ExecuteInput,
    ReadOutputInput,
    SaveCredentialInput,
    SendInputInput,
    SetWorkingDirectoryInput,
    StartShellInput,
)


class TestConnectInput:
    """Tests for ConnectInput validation."""

    def test_defaults(self):
        params = ConnectInput(host=" h ", username="u", password="p", connection_id="a")

        assert params.port == 22
        assert params.host == "h"
        assert params.to_params().auth_method == "password"

    def test_key_auth(self):
        params = ConnectInput(
            host="h", username="u", private_key_path="~/.ssh/id_rsa",
            passphrase="pp", connection_id="a"
        )
        assert params.to_params().auth_method == "private_key"

    @pytest.mark.parametrize("auth", [
        {},
        {"password": "p", "private_key_path": "/k"},
        {"password": "p", "passphrase": "pp"},
    ])
    def test_auth_method_rules(self, auth):
        with pytest.raises(ValidationError):
            ConnectInput(host="h", username="u", connection_id="a", **auth)

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            ConnectInput(host="h", username="u", password="p", connection_id="a", colour="red")

    def test_port_range(self):
        with pytest.raises(ValidationError):
            ConnectInput(host="h", username="u", password="p", connection_id="a", port=70000)


class TestSessionInputs:
    """Tests for interactive session inputs."""

    def test_start_defaults(self):
        params = StartShellInput(connection_id="c", session_id="s")

        assert (params.shell, params.cols, params.rows) == ("/bin/bash", 80, 24)

    def test_read_defaults(self):
        params = ReadOutputInput(session_id="s")

        assert params.timeout == 5000
        assert params.clear_buffer is True

    def test_send_input_is_not_stripped(self):
        params = SendInputInput(session_id="s", input="  password\n")

        assert params.input == "  password\n"
        assert params.simulate_typing is False

    def test_negative_timeout(self):
        with pytest.raises(ValidationError):
            ReadOutputInput(session_id="s", timeout=-1)


class TestDockerDeployInput:
    """Tests for DockerDeployInput."""

    def test_image_required_for_run(self):
        with pytest.raises(ValidationError):
            DockerDeployInput(connection_id="c", working_directory="/srv", deployment_type="run")

    def test_unknown_deployment_type(self):
        with pytest.raises(ValidationError):
            DockerDeployInput(connection_id="c", working_directory="/srv", deployment_type="helm")


class TestVerbatimFields:
    """Secrets, commands and paths keep their whitespace; ids are stripped."""

    def test_password_kept(self):
        params = ConnectInput(
            host="h", username="u", password="  pass word  ", connection_id=" c1 "
        )

        assert params.to_params().password == "  pass word  "
        assert params.connection_id == "c1"

    def test_passphrase_kept(self):
        params = SaveCredentialInput(
            credential_id="k", host="h", username="u",
            private_key_path="/keys/id ", passphrase=" pp "
        )

        assert params.to_params().passphrase == " pp "
        assert params.to_params().private_key_path == "/keys/id "

    def test_command_and_cwd_kept(self):
        params = ExecuteInput(connection_id="c", command="echo ' hi '  ", cwd="/srv/app ")

        assert params.command == "echo ' hi '  "
        assert params.cwd == "/srv/app "

    def test_copy_paths_kept(self):
        params = CopyFileInput(
            source_connection_id=" local ", source_path=" a.txt",
            target_connection_id="c", target_path="/tmp/b.txt "
        )

        assert params.source_connection_id == "local"
        assert (params.source_path, params.target_path) == (" a.txt", "/tmp/b.txt ")

    def test_working_directory_kept(self):
        params = SetWorkingDirectoryInput(connection_id="c", working_directory="/data/my dir ")

        assert params.working_directory == "/data/my dir "
