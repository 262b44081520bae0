"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def connected_xml() -> bytes:
    """Status page from a hub with a live VDSL line."""
    return (FIXTURES_DIR / "wan_conn_connected.xml").read_bytes()


@pytest.fixture
def disconnected_xml() -> bytes:
    """Status page from a hub whose line is down."""
    return (FIXTURES_DIR / "wan_conn_disconnected.xml").read_bytes()


@pytest.fixture
def truncated_xml() -> bytes:
    """Status page cut off part way through."""
    return (FIXTURES_DIR / "wan_conn_truncated.xml").read_bytes()


def status_page(**fields: str) -> str:
    """Build a status page with exactly the given <name value="..."/> nodes."""
    nodes = "".join(f'<{name} value="{value}"/>' for name, value in fields.items())
    return f"<status>{nodes}</status>"


@pytest.fixture
def make_status_page():
    """Factory for minimal hand-built status pages."""
    return status_page
