"""Registry of live SSH connections keyed by caller-chosen ids."""

import asyncio
import logging
import shlex
import time
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import (
    AlreadyExistsError,
    ConnectionFailedError,
    InvalidParamsError,
    NotFoundError,
    OperationFailedError,
    SshMcpError,
)
from .transport import ConnectionParams, ExecResult, RemoteShell, Transport

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """A live connection and its working-directory context."""
    connection_id: str
    shell: RemoteShell
    host: str
    port: int
    username: str
    current_working_directory: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    def describe(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"


class ConnectionRegistry:
    """Owns every open connection for the lifetime of the process.

    Ids being opened are reserved under the lock before the network
    handshake starts, so a concurrent open of the same id fails with
    AlreadyExistsError instead of racing to insert.
    """

    def __init__(self, transport: Transport):
        self._transport = transport
        self._connections: dict[str, Connection] = {}
        self._pending: set[str] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    def contains(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def ids(self) -> list[str]:
        return list(self._connections)

    def get(self, connection_id: str) -> Connection:
        """Look up a connection.

        Raises:
            NotFoundError: If connection_id is not registered
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            raise NotFoundError(
                f"Connection ID '{connection_id}' not found",
                target_id=connection_id
            )
        return connection

    async def open(self, connection_id: str, params: ConnectionParams) -> Connection:
        """Connect and register under connection_id.

        Raises:
            AlreadyExistsError: If connection_id is taken or being opened
            InvalidParamsError: If the authentication material is inconsistent
            ConnectionFailedError: If the transport cannot connect
        """
        async with self._lock:
            if connection_id in self._connections or connection_id in self._pending:
                raise AlreadyExistsError(
                    f"Connection ID '{connection_id}' already exists",
                    target_id=connection_id
                )
            params.validate()
            self._pending.add(connection_id)

        try:
            logger.info(f"Connecting {connection_id} to {params.describe()}")
            shell = await self._transport.connect(params)
        except SshMcpError as e:
            e.target_id = e.target_id or connection_id
            logger.warning(f"Connection {connection_id} failed: {e}")
            raise
        except Exception as e:
            logger.warning(f"Connection {connection_id} failed: {e}")
            raise ConnectionFailedError(
                f"SSH connection failed: {e}",
                host=params.host,
                port=params.port,
                target_id=connection_id
            ) from e
        finally:
            async with self._lock:
                self._pending.discard(connection_id)

        connection = Connection(
            connection_id=connection_id,
            shell=shell,
            host=params.host,
            port=params.port,
            username=params.username,
        )
        async with self._lock:
            self._connections[connection_id] = connection
        logger.info(f"Connected {connection_id} ({connection.describe()})")
        return connection

    async def close(self, connection_id: str) -> Connection:
        """Remove the connection and release its transport.

        Teardown errors are logged and swallowed so the entry is always removed.

        Raises:
            NotFoundError: If connection_id is not registered
        """
        async with self._lock:
            connection = self.get(connection_id)
            del self._connections[connection_id]

        try:
            await connection.shell.close()
        except Exception as e:
            logger.warning(f"Error closing connection {connection_id}: {e}")
        logger.info(f"Disconnected {connection_id}")
        return connection

    async def close_all(self) -> None:
        """Close every connection, logging individual failures."""
        for connection_id in self.ids():
            try:
                await self.close(connection_id)
            except NotFoundError:
                continue

    async def execute(
        self,
        connection_id: str,
        command: str,
        cwd: Optional[str] = None
    ) -> ExecResult:
        """Run a command on a connection.

        The cached working-directory context is not applied implicitly;
        only an explicit cwd changes the directory the command runs in.

        Raises:
            NotFoundError: If connection_id is not registered
            OperationFailedError: If the transport fails
        """
        connection = self.get(connection_id)
        logger.debug(f"[{connection_id}] exec: {command} (cwd={cwd})")
        return await connection.shell.exec(command, cwd=cwd)

    async def set_working_directory(self, connection_id: str, path: str) -> str:
        """Verify path is a remote directory and cache it.

        Raises:
            NotFoundError: If connection_id is not registered
            InvalidParamsError: If path does not exist or is not accessible
        """
        connection = self.get(connection_id)
        result = await connection.shell.exec(f"test -d {shlex.quote(path)} && echo exists")
        if not result.success:
            raise InvalidParamsError(
                f"Directory '{path}' does not exist or is not accessible",
                target_id=connection_id
            )
        connection.current_working_directory = path
        return path

    async def get_working_directory(self, connection_id: str) -> str:
        """Return the cached directory, asking the remote side once if unset.

        Raises:
            NotFoundError: If connection_id is not registered
            OperationFailedError: If pwd fails on the remote side
        """
        connection = self.get(connection_id)
        if connection.current_working_directory:
            return connection.current_working_directory

        result = await connection.shell.exec("pwd")
        if not result.success:
            raise OperationFailedError(
                f"Failed to get current directory: {result.stderr}",
                target_id=connection_id
            )
        connection.current_working_directory = result.stdout.strip()
        return connection.current_working_directory
