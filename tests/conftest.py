"""Pytest configuration for namespace_sandbox tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_SRC = Path(__file__).parent.parent / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from namespace_sandbox.providers import namespace_client
from namespace_sandbox.settings import NamespaceConfig


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    """Keep real NSC_* credentials and the shared HTTP client out of tests."""
    monkeypatch.delenv('NSC_TOKEN', raising=False)
    monkeypatch.delenv('NSC_TOKEN_FILE', raising=False)
    namespace_client._reset_shared_async_client_for_tests()
    yield
    namespace_client._reset_shared_async_client_for_tests()


@pytest.fixture
def config():
    """Provider config with a direct token."""
    return NamespaceConfig(token='test-nsc-token')
