"""
Pytest configuration shared by all digest tests.

Logs go to a throwaway directory and credentials never leak in from the
developer's environment.
"""

import os
import tempfile

import pytest

# Must be set before any matilda_digest module creates its logger
os.environ.setdefault("MATILDA_LOG_DIR", tempfile.mkdtemp(prefix="matilda-digest-test-logs-"))
os.environ.setdefault("MATILDA_DIGEST_CONFIG", os.path.join(tempfile.gettempdir(), "matilda-digest-missing.toml"))

_CREDENTIAL_ENV = ("GEMINI_API_KEY", "API_KEY", "OPENAI_API_KEY", "DIGEST_BACKEND")


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Give every test a fresh global config without ambient credentials."""
    from matilda_digest.core.config import reset_config

    for name in _CREDENTIAL_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
