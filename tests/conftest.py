"""Shared fixtures for ssh-mcp tests."""

import pytest

from ssh_mcp.config import SSHMCPConfig
from ssh_mcp.connections import ConnectionRegistry
from ssh_mcp.manager import SSHManager
from ssh_mcp.shell_sessions import ShellSessionManager
from ssh_mcp.transport import ConnectionParams

from fakes import FakeTransport


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def registry(transport):
    return ConnectionRegistry(transport)


@pytest.fixture
def sessions(registry):
    return ShellSessionManager(registry, typing_delay=(0.0, 0.0))


@pytest.fixture
def password_params():
    return ConnectionParams(host="h", username="u", password="p")


@pytest.fixture
def config(tmp_path):
    staging = tmp_path / "staging"
    staging.mkdir()
    return SSHMCPConfig(
        staging_dir=staging,
        typing_delay_min_ms=0,
        typing_delay_max_ms=0,
    )


@pytest.fixture
def manager(config, transport):
    manager = SSHManager(config=config, transport=transport)
    SSHManager.set_instance(manager)
    yield manager
    SSHManager.reset_instance()
