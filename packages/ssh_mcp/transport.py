"""Capability interface for the remote-shell transport.

The registries only talk to SSH through these contracts:

- Transport.connect() opens a RemoteShell
- RemoteShell runs commands, moves files and opens interactive channels
- ShellChannel accepts input and reports data/close through callbacks

ssh_mcp.asyncssh_transport provides the production implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .exceptions import InvalidParamsError

DataCallback = Callable[[str], None]
CloseCallback = Callable[[], None]


@dataclass
class ConnectionParams:
    """Parameters for opening an SSH connection."""
    host: str
    username: str
    port: int = 22
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    passphrase: Optional[str] = None

    @property
    def auth_method(self) -> str:
        """Either "password" or "private_key"."""
        return "private_key" if self.private_key_path else "password"

    def validate(self) -> None:
        """Check that exactly one authentication method is present.

        Raises:
            InvalidParamsError: If neither or both methods are given, or a
                passphrase is given without a private key
        """
        if not self.host:
            raise InvalidParamsError("host must not be empty")
        if not self.username:
            raise InvalidParamsError("username must not be empty")
        if not 0 < self.port < 65536:
            raise InvalidParamsError(f"port must be between 1 and 65535, got {self.port}")
        if self.password and self.private_key_path:
            raise InvalidParamsError(
                "Provide either password or private_key_path, not both"
            )
        if not self.password and not self.private_key_path:
            raise InvalidParamsError(
                "Either password or private_key_path must be provided"
            )
        if self.passphrase and not self.private_key_path:
            raise InvalidParamsError("passphrase requires private_key_path")

    def describe(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"

    def to_public_dict(self) -> dict[str, Any]:
        """Connection parameters without secrets."""
        return {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "auth_method": self.auth_method,
        }


@dataclass
class ExecResult:
    """Result of a one-shot remote command."""
    exit_code: Optional[int]
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ShellChannel(ABC):
    """An open interactive channel with a pseudo-terminal."""

    @abstractmethod
    def write(self, data: str) -> None:
        """Send input to the remote shell.

        Raises:
            OperationFailedError: If the channel rejects the write
        """

    @abstractmethod
    def close(self) -> None:
        """Request channel closure. The close callback fires once it is gone."""


class RemoteShell(ABC):
    """An authenticated connection to one remote host."""

    @abstractmethod
    async def exec(self, command: str, cwd: Optional[str] = None) -> ExecResult:
        """Run a command and capture its output.

        Args:
            command: Shell command line
            cwd: Directory to run in; None runs in the login directory

        Raises:
            OperationFailedError: If the command could not be run
        """

    @abstractmethod
    async def get_file(self, remote_path: str, local_path: str) -> None:
        """Download remote_path to local_path."""

    @abstractmethod
    async def put_file(self, local_path: str, remote_path: str) -> None:
        """Upload local_path to remote_path."""

    @abstractmethod
    async def request_shell(
        self,
        on_data: DataCallback,
        on_close: CloseCallback,
        shell: Optional[str] = None,
        cols: int = 80,
        rows: int = 24,
        term_type: str = "xterm-256color",
    ) -> ShellChannel:
        """Open an interactive channel sized cols x rows.

        on_data is called with each decoded chunk of output and on_close once
        when the channel goes away, whoever closed it.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the connection."""


class Transport(ABC):
    """Factory for RemoteShell connections."""

    @abstractmethod
    async def connect(self, params: ConnectionParams) -> RemoteShell:
        """Open and authenticate a connection.

        Raises:
            ConnectionFailedError: If the connection cannot be established
            InvalidParamsError: If the key material cannot be read
        """
