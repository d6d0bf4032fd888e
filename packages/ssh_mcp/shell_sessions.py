"""Interactive shell sessions with buffered, timeout-bounded output.

Each session wraps one interactive channel opened on a registered
connection. Channel output is appended to the session buffer by the
on-data hook, which also sets an asyncio.Event so a pending read_output
wakes up. A read races that event against its timeout.

Session states:

    created -> active -> closed
                 |
                 v
              inactive   (channel or connection went away; still readable)
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .connections import ConnectionRegistry
from .exceptions import (
    AlreadyExistsError,
    InvalidStateError,
    NotFoundError,
    OperationFailedError,
    SshMcpError,
)
from .transport import ShellChannel

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/bash"
DEFAULT_TYPING_DELAY = (0.05, 0.15)  # seconds


class SessionState(str, Enum):
    """Lifecycle states of an interactive session."""
    CREATED = "created"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


@dataclass
class ShellSession:
    """Buffered state of one interactive channel."""
    session_id: str
    connection_id: str
    shell: Optional[str] = DEFAULT_SHELL
    cols: int = 80
    rows: int = 24
    state: SessionState = SessionState.CREATED
    channel: Optional[ShellChannel] = None
    buffer: list[str] = field(default_factory=list)
    notify: asyncio.Event = field(default_factory=asyncio.Event)
    created_at: float = field(default_factory=time.time)

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def buffered_chars(self) -> int:
        return sum(len(chunk) for chunk in self.buffer)

    def append(self, data: str) -> None:
        """on-data hook."""
        if not data:
            return
        self.buffer.append(data)
        self.notify.set()

    def mark_inactive(self) -> None:
        """on-close hook."""
        if self.state in (SessionState.CREATED, SessionState.ACTIVE):
            self.state = SessionState.INACTIVE
            logger.info(f"Session {self.session_id} became inactive")
        self.notify.set()

    def drain(self, clear: bool) -> str:
        # Capture and clear happen without a suspension point in between.
        text = "".join(self.buffer)
        if clear:
            self.buffer.clear()
            self.notify.clear()
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "connection_id": self.connection_id,
            "shell": self.shell,
            "cols": self.cols,
            "rows": self.rows,
            "state": self.state.value,
            "buffered_chars": self.buffered_chars,
        }


class ShellSessionManager:
    """Owns every interactive session, keyed by caller-chosen ids.

    Sessions reference their connection by id only. If that connection is
    disconnected, the next send_input fails with InvalidStateError while
    read_output can still drain what was buffered.
    """

    def __init__(
        self,
        connections: ConnectionRegistry,
        typing_delay: tuple = DEFAULT_TYPING_DELAY,
        term_type: str = "xterm-256color",
    ):
        self._connections = connections
        self._typing_delay = typing_delay
        self._term_type = term_type
        self._sessions: dict[str, ShellSession] = {}
        self._pending: set[str] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def contains(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> ShellSession:
        """Raises NotFoundError if session_id is not registered."""
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(
                f"Session ID '{session_id}' not found",
                target_id=session_id
            )
        return session

    def list_sessions(self) -> list[dict[str, Any]]:
        return [s.to_dict() for s in self._sessions.values()]

    async def start(
        self,
        session_id: str,
        connection_id: str,
        shell: Optional[str] = DEFAULT_SHELL,
        cols: int = 80,
        rows: int = 24,
    ) -> ShellSession:
        """Open an interactive channel on connection_id and register it.

        Raises:
            NotFoundError: If connection_id is not registered
            AlreadyExistsError: If session_id is taken or being started
            OperationFailedError: If the channel cannot be opened
        """
        async with self._lock:
            connection = self._connections.get(connection_id)
            if session_id in self._sessions or session_id in self._pending:
                raise AlreadyExistsError(
                    f"Session ID '{session_id}' already exists",
                    target_id=session_id
                )
            self._pending.add(session_id)

        session = ShellSession(
            session_id=session_id,
            connection_id=connection_id,
            shell=shell,
            cols=cols,
            rows=rows,
        )

        try:
            session.channel = await connection.shell.request_shell(
                on_data=session.append,
                on_close=session.mark_inactive,
                shell=shell,
                cols=cols,
                rows=rows,
                term_type=self._term_type,
            )
        except SshMcpError as e:
            e.target_id = e.target_id or session_id
            raise
        except Exception as e:
            raise OperationFailedError(
                f"Failed to start interactive shell: {e}",
                target_id=session_id
            ) from e
        finally:
            async with self._lock:
                self._pending.discard(session_id)

        if session.state == SessionState.CREATED:
            session.state = SessionState.ACTIVE

        async with self._lock:
            self._sessions[session_id] = session
        logger.info(
            f"Started session {session_id} on {connection_id} "
            f"({shell or 'login shell'}, {cols}x{rows})"
        )
        return session

    def _ensure_writable(self, session: ShellSession) -> None:
        if not self._connections.contains(session.connection_id):
            session.mark_inactive()
            raise InvalidStateError(
                f"Connection '{session.connection_id}' for session "
                f"'{session.session_id}' is closed",
                target_id=session.session_id
            )
        if not session.is_active:
            raise InvalidStateError(
                f"Session '{session.session_id}' is not active",
                target_id=session.session_id
            )

    def _write(self, session: ShellSession, data: str) -> None:
        try:
            session.channel.write(data)
        except SshMcpError as e:
            e.target_id = e.target_id or session.session_id
            raise
        except Exception as e:
            raise OperationFailedError(
                f"Failed to send input: {e}",
                target_id=session.session_id
            ) from e

    async def send_input(
        self,
        session_id: str,
        text: str,
        simulate_typing: bool = False
    ) -> None:
        """Write text to the session's channel.

        With simulate_typing the text goes out one character at a time with
        a random pause between characters drawn from the typing delay window.

        Raises:
            NotFoundError: If session_id is not registered
            InvalidStateError: If the session or its connection is closed
            OperationFailedError: If the channel rejects the write
        """
        session = self.get(session_id)
        self._ensure_writable(session)

        if not simulate_typing:
            self._write(session, text)
            return

        low, high = self._typing_delay
        for index, char in enumerate(text):
            if index:
                await asyncio.sleep(random.uniform(low, high))
                self._ensure_writable(session)
            self._write(session, char)

    async def read_output(
        self,
        session_id: str,
        timeout_ms: float = 5000,
        clear_buffer: bool = True
    ) -> str:
        """Return buffered output, waiting up to timeout_ms for some to arrive.

        Raises:
            NotFoundError: If session_id is not registered
        """
        session = self.get(session_id)

        if not session.buffer and session.is_active:
            session.notify.clear()
            try:
                await asyncio.wait_for(session.notify.wait(), timeout=timeout_ms / 1000.0)
            except asyncio.TimeoutError:
                pass

        return session.drain(clear_buffer)

    async def close(self, session_id: str) -> ShellSession:
        """Close the channel and forget the session.

        Raises:
            NotFoundError: If session_id is not registered
        """
        async with self._lock:
            session = self.get(session_id)
            del self._sessions[session_id]

        if session.channel is not None:
            try:
                session.channel.close()
            except Exception as e:
                logger.warning(f"Error closing session {session_id}: {e}")
        session.state = SessionState.CLOSED
        session.notify.set()
        logger.info(f"Closed session {session_id}")
        return session

    def detach_connection(self, connection_id: str) -> list[str]:
        """Mark every session bound to connection_id inactive."""
        detached = []
        for session in self._sessions.values():
            if session.connection_id == connection_id:
                session.mark_inactive()
                detached.append(session.session_id)
        return detached

    async def close_all(self) -> None:
        """Close every session, logging individual failures."""
        for session_id in list(self._sessions):
            try:
                await self.close(session_id)
            except NotFoundError:
                continue
