"""
Pytest configuration and shared fixtures for toolmesh tests.
"""

import io
import sys
from pathlib import Path

import pytest

from toolmesh_core.config import ClientSettings, MCPServerConfig
from toolmesh_core.logging import LogConfig, ToolmeshLogger
from toolmesh_core.types import LogFormat, LogLevel, MCPTransport

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def tests_dir() -> Path:
    """Return the tests directory."""
    return Path(__file__).parent


@pytest.fixture(scope="session")
def fixtures_dir(tests_dir: Path) -> Path:
    """Return the fixtures directory."""
    return tests_dir / "fixtures"


@pytest.fixture(scope="session")
def fake_server_script(fixtures_dir: Path) -> Path:
    """Return path to the fake stdio MCP server."""
    return fixtures_dir / "fake_mcp_server.py"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def fast_settings() -> ClientSettings:
    """Client settings with short timeouts for tests."""
    return ClientSettings(request_timeout=2.0, spawn_grace=0.05, kill_grace=1.0)


@pytest.fixture
def http_config() -> MCPServerConfig:
    """HTTP server config pointing at a mock URL."""
    return MCPServerConfig(
        id="srv-http",
        name="Remote Server",
        transport=MCPTransport.HTTP,
        url="https://mcp.example.com/mcp",
    )


@pytest.fixture
def stdio_config(fake_server_script: Path) -> MCPServerConfig:
    """Stdio server config running the fake server with this interpreter."""
    return MCPServerConfig(
        id="srv-stdio",
        name="Local Server",
        transport=MCPTransport.STDIO,
        command=sys.executable,
        args=(str(fake_server_script),),
    )


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def log_stream() -> io.StringIO:
    """Stream capturing logger output."""
    return io.StringIO()


@pytest.fixture
def json_logger(log_stream: io.StringIO) -> ToolmeshLogger:
    """Logger writing JSON lines at DEBUG level into log_stream."""
    return ToolmeshLogger(LogConfig(level=LogLevel.DEBUG, format=LogFormat.JSON, output=log_stream))


# =============================================================================
# Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "mcp_client: MCP client tests")
    config.addinivalue_line("markers", "slow: Slow tests")
