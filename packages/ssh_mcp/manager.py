"""Process-wide owner of connections, sessions and credentials.

This module provides a singleton manager that:
- Holds the connection registry, shell session manager and credential store
- Builds them around one transport (asyncssh unless a test injects another)
- Closes every session and connection on shutdown
"""

import logging
from typing import Optional

from .asyncssh_transport import AsyncSSHTransport
from .config import SSHMCPConfig, get_config, validate_config
from .connections import Connection, ConnectionRegistry
from .credentials import CredentialStore
from .files import FileOperations
from .shell_sessions import ShellSessionManager
from .transport import Transport

logger = logging.getLogger(__name__)


class SSHManager:
    """Singleton owning the three registries for the server process.

    Tools reach the registries through get_instance(); tests build their own
    instance around a fake transport.
    """

    _instance: Optional["SSHManager"] = None

    def __init__(
        self,
        config: Optional[SSHMCPConfig] = None,
        transport: Optional[Transport] = None,
    ):
        """Initialize the manager.

        Args:
            config: Configuration object. If None, loads from environment.
            transport: Transport to connect with. If None, uses asyncssh.
        """
        self.config = config or get_config()
        validate_config(self.config)

        if transport is None:
            transport = AsyncSSHTransport(self.config)

        self.connections = ConnectionRegistry(transport)
        self.sessions = ShellSessionManager(
            self.connections,
            typing_delay=self.config.typing_delay_window,
            term_type=self.config.term_type,
        )
        self.credentials = CredentialStore()
        self.files = FileOperations(
            self.connections,
            local_ref=self.config.local_ref,
            staging_dir=self.config.staging_dir,
        )

    @classmethod
    def get_instance(cls, config: Optional[SSHMCPConfig] = None) -> "SSHManager":
        """Get the singleton instance.

        Args:
            config: Optional config to use for initialization

        Returns:
            The singleton SSHManager instance
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def set_instance(cls, manager: Optional["SSHManager"]) -> None:
        """Install a prebuilt manager (for testing)."""
        cls._instance = manager

    @classmethod
    def reset_instance(cls):
        """Drop the singleton without closing anything (for testing)."""
        cls._instance = None

    async def disconnect(self, connection_id: str) -> Connection:
        """Close a connection and mark its sessions inactive.

        Raises:
            NotFoundError: If connection_id is not registered
        """
        connection = await self.connections.close(connection_id)
        detached = self.sessions.detach_connection(connection_id)
        if detached:
            logger.info(f"Sessions left inactive by {connection_id}: {', '.join(detached)}")
        return connection

    async def shutdown(self) -> None:
        """Close every session, then every connection.

        Individual failures are logged by the registries; shutdown always
        runs to completion.
        """
        logger.info(
            f"Shutting down: {len(self.sessions)} session(s), "
            f"{len(self.connections)} connection(s)"
        )
        try:
            await self.sessions.close_all()
        except Exception as e:
            logger.error(f"Error closing shell sessions: {e}")
        try:
            await self.connections.close_all()
        except Exception as e:
            logger.error(f"Error closing connections: {e}")
        logger.info("Shutdown complete")
