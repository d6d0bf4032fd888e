"""Tests for the MCP tool functions."""

import pytest

from ssh_mcp import tools
from ssh_mcp.transport import ExecResult

from fakes import refuse


async def connect(connection_id="web"):
    return await tools.ssh_connect(
        host="10.0.0.5", username="deploy", connection_id=connection_id, password="pw"
    )


class TestConnectionTools:
    """Tests for connect/disconnect/execute tools."""

    @pytest.mark.asyncio
    async def test_connect(self, manager):
        result = await connect()

        assert result.success
        assert result.connection_id == "web"
        assert "10.0.0.5:22 as deploy" in result.message
        assert manager.connections.contains("web")

    @pytest.mark.asyncio
    async def test_connect_duplicate(self, manager):
        await connect()

        result = await connect()

        assert not result.success
        assert result.error == "AlreadyExists"

    @pytest.mark.asyncio
    async def test_validation_happens_before_core(self, manager, transport):
        result = await tools.ssh_connect(host="h", username="u", connection_id="web")

        assert not result.success
        assert result.error == "InvalidParams"
        assert transport.opened == []
        assert not manager.connections.contains("web")

    @pytest.mark.asyncio
    async def test_password_reaches_transport_unchanged(self, manager, transport):
        await tools.ssh_connect(
            host="h", username="u", connection_id="c1", password="  pass word  "
        )

        assert transport.last.params.password == "  pass word  "

    @pytest.mark.asyncio
    async def test_connection_failure(self, manager, transport):
        transport.connect_error = refuse("10.0.0.5")

        result = await connect()

        assert result.error == "ConnectionFailed"
        assert "Connection refused" in result.message

    @pytest.mark.asyncio
    async def test_execute(self, manager, transport):
        await connect()
        transport.last.responses["uname"] = ExecResult(0, "Linux\n", "")

        result = await tools.ssh_execute(connection_id="web", command="uname")

        assert result.success
        assert result.exit_code == 0
        assert result.stdout == "Linux\n"

    @pytest.mark.asyncio
    async def test_execute_unknown_connection(self, manager):
        result = await tools.ssh_execute(connection_id="nope", command="ls")

        assert not result.success
        assert result.error == "NotFound"
        assert "nope" in result.message

    @pytest.mark.asyncio
    async def test_disconnect_twice(self, manager):
        await connect()

        first = await tools.ssh_disconnect(connection_id="web")
        second = await tools.ssh_disconnect(connection_id="web")

        assert first.success
        assert second.error == "NotFound"

    @pytest.mark.asyncio
    async def test_working_directory(self, manager):
        await connect()

        missing = await tools.ssh_set_working_directory(
            connection_id="web", working_directory="/nope"
        )
        set_result = await tools.ssh_set_working_directory(
            connection_id="web", working_directory="/tmp"
        )
        get_result = await tools.ssh_get_working_directory(connection_id="web")

        assert missing.error == "InvalidParams"
        assert set_result.success
        assert get_result.cwd == "/tmp"


class TestShellTools:
    """Tests for the interactive shell tools."""

    @pytest.mark.asyncio
    async def test_round_trip(self, manager, transport):
        await connect()
        transport.last.echo = True

        started = await tools.ssh_start_interactive_shell(connection_id="web", session_id="s1")
        sent = await tools.ssh_send_input(session_id="s1", input="hunter2\n", simulate_typing=True)
        read = await tools.ssh_read_output(session_id="s1", timeout=100)
        closed = await tools.ssh_close_interactive_shell(session_id="s1")

        assert started.success and sent.success and closed.success
        assert "hunter2" not in sent.message
        assert read.output == "hunter2\n"
        assert read.active is True

    @pytest.mark.asyncio
    async def test_start_on_missing_connection(self, manager):
        result = await tools.ssh_start_interactive_shell(connection_id="connX", session_id="s1")

        assert result.error == "NotFound"
        assert not manager.sessions.contains("s1")

    @pytest.mark.asyncio
    async def test_send_after_disconnect(self, manager):
        await connect()
        await tools.ssh_start_interactive_shell(connection_id="web", session_id="s1")
        await tools.ssh_disconnect(connection_id="web")

        result = await tools.ssh_send_input(session_id="s1", input="ls\n")
        listing = await tools.ssh_list_sessions()

        assert result.error == "InvalidState"
        assert listing.sessions[0]["state"] == "inactive"

    @pytest.mark.asyncio
    async def test_read_unknown_session(self, manager):
        result = await tools.ssh_read_output(session_id="nope", timeout=10)

        assert result.error == "NotFound"


class TestCredentialTools:
    """Tests for the credential tools."""

    @pytest.mark.asyncio
    async def test_save_list_connect_delete(self, manager):
        saved = await tools.ssh_save_credential(
            credential_id="prod", host="10.0.0.9", username="ops", password="pw"
        )
        listing = await tools.ssh_list_credentials()
        connected = await tools.ssh_connect_with_credential(
            credential_id="prod", connection_id="p1"
        )
        deleted = await tools.ssh_delete_credential(credential_id="prod")

        assert saved.success
        assert listing.credentials[0]["has_password"] is True
        assert "password" not in listing.credentials[0]
        assert connected.success and connected.host == "10.0.0.9"
        assert manager.connections.contains("p1")
        assert deleted.success
        assert len(manager.credentials) == 0

    @pytest.mark.asyncio
    async def test_saved_password_unchanged(self, manager):
        await tools.ssh_save_credential(credential_id="x", host="h", username="u", password=" p ")

        assert manager.credentials.load("x").params.password == " p "

    @pytest.mark.asyncio
    async def test_empty_listing(self, manager):
        listing = await tools.ssh_list_credentials()

        assert listing.message == "No saved credentials found"

    @pytest.mark.asyncio
    async def test_save_without_auth(self, manager):
        result = await tools.ssh_save_credential(credential_id="x", host="h", username="u")

        assert result.error == "InvalidParams"
        assert len(manager.credentials) == 0


class TestFileAndDockerTools:
    """Tests for file and docker tools."""

    @pytest.mark.asyncio
    async def test_copy_unknown_target(self, manager, tmp_path):
        source = tmp_path / "a.txt"
        source.write_text("x")

        result = await tools.ssh_copy_file(
            source_connection_id="local",
            source_path=str(source),
            target_connection_id="ghost",
            target_path="/tmp/a.txt",
        )

        assert result.error == "NotFound"

    @pytest.mark.asyncio
    async def test_list_local(self, manager, tmp_path):
        (tmp_path / "one.txt").write_text("")

        result = await tools.ssh_list_files(connection_id="local", remote_path=str(tmp_path))

        assert result.success
        assert "one.txt" in [e["name"] for e in result.entries]

    @pytest.mark.asyncio
    async def test_docker_deploy_validation(self, manager):
        await connect()

        result = await tools.ssh_docker_deploy(
            connection_id="web", working_directory="/srv", deployment_type="run"
        )

        assert result.error == "InvalidParams"
        assert manager.connections.get("web").shell.commands == []

    @pytest.mark.asyncio
    async def test_docker_deploy(self, manager):
        await connect()

        result = await tools.ssh_docker_deploy(
            connection_id="web", working_directory="/srv", deployment_type="compose"
        )

        assert result.success
        assert result.command == "docker-compose up -d"
