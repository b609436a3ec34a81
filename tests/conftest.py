import socket

import pytest

from formfill_bridge import telemetry


def pytest_configure(config):
    config.addinivalue_line("markers", "requires_unix_socket: requires AF_UNIX socket support")


def pytest_collection_modifyitems(config, items):
    if hasattr(socket, "AF_UNIX"):
        return
    skip = pytest.mark.skip(reason="unix domain sockets not available on this platform")
    for item in items:
        if "requires_unix_socket" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep every test away from the user's environment and event log."""
    for key in ("FORMFILL_ENDPOINT", "FORMFILL_MAX_FRAME_BYTES", "FORMFILL_CONNECT_TIMEOUT_MS",
                "FORMFILL_LOG_LEVEL", "FORMFILL_TELEMETRY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("FORMFILL_DIR", str(tmp_path / "formfill"))
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def full_address():
    """Address with all eleven known fields set to distinct placeholders."""
    return {
        "given-name": "John",
        "additional-name": "R.",
        "family-name": "Smith",
        "organization": "World Wide Web Consortium",
        "street-address": "32 Vassar Street",
        "address-level2": "Cambridge",
        "address-level1": "MA",
        "postal-code": "02139",
        "country": "US",
        "tel": "+16172535702",
        "email": "timbl@w3.org",
    }
