"""Tests for the asyncssh transport against an in-process SSH server."""

import asyncio

import asyncssh
import pytest

from ssh_mcp.asyncssh_transport import AsyncSSHTransport, wrap_command
from ssh_mcp.config import SSHMCPConfig
from ssh_mcp.exceptions import ConnectionFailedError
from ssh_mcp.transport import ConnectionParams

BINARY_OUTPUT = b"ok \xff\xfe binary\n"


class PasswordServer(asyncssh.SSHServer):
    """Accepts user 'u' with password 'pw'."""

    def begin_auth(self, username):
        return True

    def password_auth_supported(self):
        return True

    def validate_password(self, username, password):
        return username == "u" and password == "pw"


async def write_binary(process):
    process.stdout.write(BINARY_OUTPUT)
    process.exit(0)


async def start_server():
    return await asyncssh.create_server(
        PasswordServer,
        "127.0.0.1",
        0,
        server_host_keys=[asyncssh.generate_private_key("ssh-ed25519")],
        process_factory=write_binary,
        encoding=None,
        line_editor=False,
    )


def make_transport(tmp_path):
    return AsyncSSHTransport(SSHMCPConfig(staging_dir=tmp_path, connect_timeout=10))


class TestWrapCommand:
    """Tests for wrap_command."""

    def test_no_cwd(self):
        assert wrap_command("ls") == "ls"

    def test_cwd_is_quoted(self):
        assert wrap_command("ls", "/srv/my app") == "cd '/srv/my app' && ls"


class TestAsyncSSHTransport:
    """Tests for AsyncSSHTransport with a local server."""

    @pytest.mark.asyncio
    async def test_invalid_utf8_keeps_connection(self, tmp_path):
        server = await start_server()
        port = server.sockets[0].getsockname()[1]
        shell = await make_transport(tmp_path).connect(
            ConnectionParams(host="127.0.0.1", port=port, username="u", password="pw")
        )

        chunks = []
        closed = asyncio.Event()
        try:
            await shell.request_shell(chunks.append, closed.set)
            await asyncio.wait_for(closed.wait(), timeout=5)
            result = await shell.exec("cat blob.bin")
        finally:
            await shell.close()
            server.close()
            await server.wait_closed()

        assert "ok \ufffd\ufffd binary" in "".join(chunks)
        assert result.exit_code == 0
        assert "ok \ufffd\ufffd binary" in result.stdout

    @pytest.mark.asyncio
    async def test_wrong_password(self, tmp_path):
        server = await start_server()
        port = server.sockets[0].getsockname()[1]
        try:
            with pytest.raises(ConnectionFailedError) as exc_info:
                await make_transport(tmp_path).connect(
                    ConnectionParams(host="127.0.0.1", port=port, username="u", password="nope")
                )
        finally:
            server.close()
            await server.wait_closed()

        assert exc_info.value.port == port
