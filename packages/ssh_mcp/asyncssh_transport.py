"""asyncssh implementation of the remote-shell capability."""

import asyncio
import logging
import shlex
from pathlib import Path
from typing import Optional

import asyncssh

from .config import SSHMCPConfig
from .exceptions import (
    ConnectionFailedError,
    InvalidParamsError,
    OperationFailedError,
)
from .transport import (
    CloseCallback,
    ConnectionParams,
    DataCallback,
    ExecResult,
    RemoteShell,
    ShellChannel,
    Transport,
)

logger = logging.getLogger(__name__)

# Undecodable bytes from the remote side become U+FFFD; strict decoding
# would make asyncssh drop the whole connection.
DECODE_ERRORS = "replace"


def wrap_command(command: str, cwd: Optional[str] = None) -> str:
    """Prefix command with a directory change when cwd is given."""
    if not cwd:
        return command
    return f"cd {shlex.quote(cwd)} && {command}"


class _ShellSession(asyncssh.SSHClientSession):
    """Forwards channel events to the session manager's hooks."""

    def __init__(self, on_data: DataCallback, on_close: CloseCallback):
        self._on_data = on_data
        self._on_close = on_close

    def data_received(self, data, datatype):
        self._on_data(data)

    def connection_lost(self, exc):
        if exc:
            logger.debug(f"Shell channel lost: {exc}")
        self._on_close()


class AsyncSSHChannel(ShellChannel):
    """Interactive channel backed by an asyncssh SSHClientChannel."""

    def __init__(self, channel: asyncssh.SSHClientChannel):
        self._channel = channel

    def write(self, data: str) -> None:
        try:
            self._channel.write(data)
        except (OSError, asyncssh.Error) as e:
            raise OperationFailedError(f"Write to shell channel failed: {e}")

    def close(self) -> None:
        self._channel.close()


class AsyncSSHConnection(RemoteShell):
    """RemoteShell backed by an asyncssh client connection."""

    def __init__(self, conn: asyncssh.SSHClientConnection, params: ConnectionParams):
        self._conn = conn
        self._params = params

    async def exec(self, command: str, cwd: Optional[str] = None) -> ExecResult:
        try:
            result = await self._conn.run(
                wrap_command(command, cwd), check=False, errors=DECODE_ERRORS
            )
        except (OSError, asyncssh.Error) as e:
            raise OperationFailedError(f"Command execution failed: {e}")

        return ExecResult(
            exit_code=result.exit_status,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    async def get_file(self, remote_path: str, local_path: str) -> None:
        try:
            async with self._conn.start_sftp_client() as sftp:
                await sftp.get(remote_path, local_path)
        except (OSError, asyncssh.Error) as e:
            raise OperationFailedError(
                f"Download of {self._params.host}:{remote_path} failed: {e}"
            )

    async def put_file(self, local_path: str, remote_path: str) -> None:
        try:
            async with self._conn.start_sftp_client() as sftp:
                await sftp.put(local_path, remote_path)
        except (OSError, asyncssh.Error) as e:
            raise OperationFailedError(
                f"Upload to {self._params.host}:{remote_path} failed: {e}"
            )

    async def request_shell(
        self,
        on_data: DataCallback,
        on_close: CloseCallback,
        shell: Optional[str] = None,
        cols: int = 80,
        rows: int = 24,
        term_type: str = "xterm-256color",
    ) -> ShellChannel:
        try:
            channel, _ = await self._conn.create_session(
                lambda: _ShellSession(on_data, on_close),
                command=shell,
                term_type=term_type,
                term_size=(cols, rows),
                errors=DECODE_ERRORS,
            )
        except (OSError, asyncssh.Error) as e:
            raise OperationFailedError(f"Failed to start interactive shell: {e}")
        return AsyncSSHChannel(channel)

    async def close(self) -> None:
        self._conn.close()
        await self._conn.wait_closed()


class AsyncSSHTransport(Transport):
    """Opens connections with asyncssh.connect."""

    def __init__(self, config: SSHMCPConfig):
        self._config = config

    def _load_client_keys(self, params: ConnectionParams) -> list:
        key_path = Path(params.private_key_path).expanduser()
        try:
            return [asyncssh.read_private_key(str(key_path), params.passphrase)]
        except OSError as e:
            raise InvalidParamsError(f"Cannot read private key {key_path}: {e}")
        except asyncssh.KeyImportError as e:
            raise InvalidParamsError(f"Cannot load private key {key_path}: {e}")

    async def connect(self, params: ConnectionParams) -> RemoteShell:
        options = {
            "host": params.host,
            "port": params.port,
            "username": params.username,
            "known_hosts": (
                str(self._config.known_hosts_path)
                if self._config.known_hosts_path else None
            ),
        }
        if params.private_key_path:
            options["client_keys"] = self._load_client_keys(params)
        else:
            options["password"] = params.password
            options["client_keys"] = None

        try:
            conn = await asyncio.wait_for(
                asyncssh.connect(**options),
                timeout=self._config.connect_timeout
            )
        except asyncio.TimeoutError:
            raise ConnectionFailedError(
                f"Connection to {params.describe()} timed out after "
                f"{self._config.connect_timeout}s",
                host=params.host,
                port=params.port
            )
        except (OSError, asyncssh.Error) as e:
            raise ConnectionFailedError(
                f"SSH connection to {params.describe()} failed: {e}",
                host=params.host,
                port=params.port
            )

        return AsyncSSHConnection(conn, params)
