"""In-memory store of reusable SSH connection parameters."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from .connections import Connection, ConnectionRegistry
from .exceptions import AlreadyExistsError, NotFoundError
from .transport import ConnectionParams

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Credential:
    """Saved connection parameters plus usage timestamps."""
    credential_id: str
    params: ConnectionParams
    created_at: datetime
    last_used: datetime

    def to_masked_dict(self) -> dict[str, Any]:
        """Listing entry with secrets replaced by presence flags."""
        return {
            "credential_id": self.credential_id,
            "host": self.params.host,
            "port": self.params.port,
            "username": self.params.username,
            "has_password": bool(self.params.password),
            "has_private_key": bool(self.params.private_key_path),
            "created_at": self.created_at.isoformat(),
            "last_used": self.last_used.isoformat(),
        }


class CredentialStore:
    """Credentials keyed by caller-chosen ids. Nothing is persisted."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._credentials: dict[str, Credential] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._credentials)

    async def save(self, credential_id: str, params: ConnectionParams) -> Credential:
        """Store params under credential_id.

        Raises:
            AlreadyExistsError: If credential_id is taken
            InvalidParamsError: If params carry no usable authentication method
        """
        async with self._lock:
            if credential_id in self._credentials:
                raise AlreadyExistsError(
                    f"Credential ID '{credential_id}' already exists",
                    target_id=credential_id
                )
            params.validate()
            now = self._clock()
            credential = Credential(
                credential_id=credential_id,
                params=params,
                created_at=now,
                last_used=now,
            )
            self._credentials[credential_id] = credential

        logger.info(f"Saved credential {credential_id} for {params.describe()}")
        return credential

    def load(self, credential_id: str) -> Credential:
        """Raises NotFoundError if credential_id is unknown."""
        credential = self._credentials.get(credential_id)
        if credential is None:
            raise NotFoundError(
                f"Credential ID '{credential_id}' not found",
                target_id=credential_id
            )
        return credential

    def list_credentials(self) -> list[dict[str, Any]]:
        return [c.to_masked_dict() for c in self._credentials.values()]

    async def delete(self, credential_id: str) -> Credential:
        async with self._lock:
            credential = self.load(credential_id)
            del self._credentials[credential_id]
        logger.info(f"Deleted credential {credential_id}")
        return credential

    async def connect_using(
        self,
        credential_id: str,
        connection_id: str,
        registry: ConnectionRegistry
    ) -> Connection:
        """Open a connection from a saved credential and record the use.

        Raises:
            NotFoundError: If credential_id is unknown
            AlreadyExistsError: If connection_id is taken
            ConnectionFailedError: If the transport cannot connect
        """
        credential = self.load(credential_id)
        connection = await registry.open(connection_id, credential.params)
        credential.last_used = self._clock()
        logger.info(f"Connection {connection_id} opened with credential {credential_id}")
        return connection
