"""Pytest configuration and shared fixtures for FTP batch dispatcher tests."""

import pytest
from unittest.mock import MagicMock

from ftp_batch.ftp.connection import FTPClient, FTPConnectionConfig, FTPResponse
from ftp_batch.items import BinaryData, Item


# Test constants
TEST_FTP_HOST = "127.0.0.1"
TEST_FTP_USER = "testuser"
TEST_FTP_PASS = "testpass"

CERT_BODY = [
    "MIIBszCCAVmgAwIBAgIUQ2VydGlmaWNhdGVGb3JUZXN0czAKBggqhkjOPQQDAjAU",
    "MRIwEAYDVQQDDAlsb2NhbGhvc3QwHhcNMjQwMTAxMDAwMDAwWhcNMzQwMTAxMDAw",
    "MDAwWjAUMRIwEAYDVQQDDAlsb2NhbGhvc3Q=",
]

KEY_BODY = [
    "MIGHAgEAMBMGByqGSM49AgEGCCqGSM49AwEHBG0wawIBAQQgS2V5Rm9yVGVzdHNP",
    "bmx5S2V5Rm9yVGVzdHNPbmx5S2V5Rm9yoUQDQgAE",
]


def _pem(label: str, body, separator: str) -> str:
    return f"-----BEGIN {label}-----{separator}" + separator.join(body) + f"{separator}-----END {label}-----"


@pytest.fixture
def valid_certificate() -> str:
    """A well-formed PEM certificate."""
    return _pem("CERTIFICATE", CERT_BODY, "\n")


@pytest.fixture
def mangled_certificate() -> str:
    """The same certificate with newlines collapsed to spaces."""
    return _pem("CERTIFICATE", CERT_BODY, " ")


@pytest.fixture
def valid_private_key() -> str:
    """A well-formed PEM private key."""
    return _pem("PRIVATE KEY", KEY_BODY, "\n")


@pytest.fixture
def mangled_private_key() -> str:
    """The same private key with newlines collapsed to spaces."""
    return _pem("PRIVATE KEY", KEY_BODY, " ")


@pytest.fixture
def ftp_config() -> FTPConnectionConfig:
    """Provide a plain FTP connection configuration for tests."""
    return FTPConnectionConfig(
        host=TEST_FTP_HOST,
        user=TEST_FTP_USER,
        password=TEST_FTP_PASS,
        secure=False,
    )


@pytest.fixture
def mock_session():
    """A connected session double with FTPClient's interface."""
    session = MagicMock(spec=FTPClient)
    session.remove.return_value = FTPResponse(250, "250 File removed.")
    session.upload_from.return_value = FTPResponse(226, "226 Transfer complete.")
    session.download_to.return_value = FTPResponse(226, "226 Transfer complete.")
    session.list.return_value = []
    return session


@pytest.fixture
def sample_items():
    """Three input records with a binary attachment each."""
    return [
        Item(json={"name": f"file{i}.txt"}, binary={"data": BinaryData.prepare(f"content {i}".encode(), f"file{i}.txt")})
        for i in range(3)
    ]
