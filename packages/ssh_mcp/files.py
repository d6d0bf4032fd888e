"""File copy, listing and stat across local and remote hosts.

A ref is either a registered connection id or the local sentinel
(``"local"`` by default), which designates this machine's filesystem.
"""

import logging
import os
import posixpath
import shlex
import shutil
import stat
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .connections import ConnectionRegistry
from .exceptions import OperationFailedError, SshMcpError

logger = logging.getLogger(__name__)

STAGING_PREFIX = "ssh-mcp-staging-"


@dataclass
class ListingResult:
    """Directory listing: structured entries locally, ls output remotely."""
    path: str
    entries: Optional[list[dict[str, Any]]] = None
    raw: Optional[str] = None


@dataclass
class FileInfoResult:
    """File metadata: structured fields locally, stat output remotely."""
    path: str
    info: Optional[dict[str, Any]] = None
    raw: Optional[str] = None


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class FileOperations:
    """Copy/list/stat on top of the connection registry."""

    def __init__(
        self,
        connections: ConnectionRegistry,
        local_ref: str = "local",
        staging_dir: Optional[Path] = None,
    ):
        self._connections = connections
        self.local_ref = local_ref
        self._staging_dir = Path(staging_dir) if staging_dir else Path(tempfile.gettempdir())

    def is_local(self, ref: str) -> bool:
        return ref == self.local_ref

    async def _make_remote_dirs(self, connection_id: str, remote_path: str) -> None:
        target_dir = posixpath.dirname(remote_path)
        if not target_dir:
            return
        result = await self._connections.execute(
            connection_id, f"mkdir -p {shlex.quote(target_dir)}"
        )
        if not result.success:
            raise OperationFailedError(
                f"Cannot create {connection_id}:{target_dir}: {result.stderr.strip()}",
                target_id=connection_id
            )

    @staticmethod
    def _make_local_dirs(local_path: str) -> None:
        Path(local_path).expanduser().parent.mkdir(parents=True, exist_ok=True)

    async def copy_file(
        self,
        source_ref: str,
        source_path: str,
        target_ref: str,
        target_path: str,
        create_directories: bool = True,
    ) -> str:
        """Copy a file between any two refs.

        Remote-to-remote copies are relayed through a local staging file
        which is removed whether or not the copy succeeds.

        Returns:
            Human-readable description of what was copied

        Raises:
            NotFoundError: If a ref is neither local nor a registered connection
            OperationFailedError: If a transfer or local I/O step fails
        """
        # Resolve both refs before touching anything.
        source = None if self.is_local(source_ref) else self._connections.get(source_ref)
        target = None if self.is_local(target_ref) else self._connections.get(target_ref)

        src_label = source_path if source is None else f"{source_ref}:{source_path}"
        dst_label = target_path if target is None else f"{target_ref}:{target_path}"

        try:
            if source is None and target is None:
                if create_directories:
                    self._make_local_dirs(target_path)
                shutil.copyfile(
                    Path(source_path).expanduser(), Path(target_path).expanduser()
                )
            elif source is None:
                if create_directories:
                    await self._make_remote_dirs(target_ref, target_path)
                await target.shell.put_file(str(Path(source_path).expanduser()), target_path)
            elif target is None:
                if create_directories:
                    self._make_local_dirs(target_path)
                await source.shell.get_file(source_path, str(Path(target_path).expanduser()))
            else:
                await self._relay(source_ref, source_path, target_ref, target_path,
                                  create_directories)
        except SshMcpError:
            raise
        except OSError as e:
            raise OperationFailedError(f"File copy failed: {e}") from e

        logger.info(f"Copied {src_label} to {dst_label}")
        return f"Successfully copied {src_label} to {dst_label}"

    async def _relay(
        self,
        source_ref: str,
        source_path: str,
        target_ref: str,
        target_path: str,
        create_directories: bool,
    ) -> None:
        fd, staging_path = tempfile.mkstemp(prefix=STAGING_PREFIX, dir=self._staging_dir)
        os.close(fd)
        try:
            source = self._connections.get(source_ref)
            await source.shell.get_file(source_path, staging_path)
            if create_directories:
                await self._make_remote_dirs(target_ref, target_path)
            target = self._connections.get(target_ref)
            await target.shell.put_file(staging_path, target_path)
        finally:
            try:
                os.unlink(staging_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove staging file {staging_path}: {e}")

    async def list_files(self, ref: str, path: str, show_hidden: bool = False) -> ListingResult:
        """List a directory.

        Raises:
            NotFoundError: If ref is unknown
            OperationFailedError: If the directory cannot be listed
        """
        if self.is_local(ref):
            directory = Path(path).expanduser()
            try:
                children = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as e:
                raise OperationFailedError(f"List files failed: {e}") from e
            entries = [
                {
                    "name": child.name,
                    "type": "directory" if child.is_dir() else "file",
                    "path": str(Path(path) / child.name),
                }
                for child in children
                if show_hidden or not child.name.startswith(".")
            ]
            return ListingResult(path=path, entries=entries)

        ls_command = "ls -la" if show_hidden else "ls -l"
        result = await self._connections.execute(ref, f"{ls_command} {shlex.quote(path)}")
        if not result.success:
            raise OperationFailedError(
                f"ls command failed: {result.stderr.strip()}",
                target_id=ref
            )
        return ListingResult(path=path, raw=result.stdout)

    async def file_info(self, ref: str, path: str) -> FileInfoResult:
        """Stat a file.

        Raises:
            NotFoundError: If ref is unknown
            OperationFailedError: If the file cannot be stat'ed
        """
        if self.is_local(ref):
            try:
                st = Path(path).expanduser().stat()
            except OSError as e:
                raise OperationFailedError(f"Get file info failed: {e}") from e
            created = getattr(st, "st_birthtime", st.st_ctime)
            return FileInfoResult(path=path, info={
                "path": path,
                "size": st.st_size,
                "is_directory": stat.S_ISDIR(st.st_mode),
                "is_file": stat.S_ISREG(st.st_mode),
                "modified": _iso(st.st_mtime),
                "created": _iso(created),
                "permissions": "0" + format(stat.S_IMODE(st.st_mode) & 0o777, "o"),
            })

        result = await self._connections.execute(ref, f"stat {shlex.quote(path)}")
        if not result.success:
            raise OperationFailedError(
                f"stat command failed: {result.stderr.strip()}",
                target_id=ref
            )
        return FileInfoResult(path=path, raw=result.stdout)
