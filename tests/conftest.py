import socket

import pytest

from src.server.ssl_utils import generate_certificate_and_key
from tests.constants import CERTS_DIR, SERVER_CRT, SERVER_KEY, VOCABULARY


@pytest.fixture(scope="session", autouse=True)
def generate_test_certs() -> None:
    """Generates SSL certificates for testing if they don't already exist.
    This fixture runs automatically once per test session.
    """
    if SERVER_CRT.exists() and SERVER_KEY.exists():
        return

    CERTS_DIR.mkdir(parents=True, exist_ok=True)
    generate_certificate_and_key(CERTS_DIR)


@pytest.fixture
def free_port() -> int:
    """Fixture to get a free TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def vocabulary_path(tmp_path):
    """A vocabulary file with one entry per line and a blank line."""
    path = tmp_path / "vocabulary.txt"
    path.write_text("\n".join(VOCABULARY) + "\n\n", encoding="utf-8")
    return path


@pytest.fixture
def config_path(tmp_path, vocabulary_path, free_port):
    """A server configuration pointing at `vocabulary_path`."""
    path = tmp_path / "config.txt"
    path.write_text(
        f"vocabulary_path = {vocabulary_path}\n"
        "reread_on_query = false\n"
        f"port = {free_port}\n"
        "use_ssl = false\n",
        encoding="utf-8",
    )
    return path
