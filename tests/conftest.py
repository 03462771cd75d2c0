"""Shared fixtures: in-memory secure storage and temp-file config scopes."""

from __future__ import annotations

from typing import Any, Callable, Dict

import pytest
import yaml

from ucp_vault.display.logging_config import secret_redaction_filter
from ucp_vault.secrets.backends import MemoryBackend
from ucp_vault.secrets.store import SecretStore


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def secret_store(backend: MemoryBackend) -> SecretStore:
    return SecretStore(backend)


@pytest.fixture
def write_scope(tmp_path) -> Callable[[str, Dict[str, Any]], str]:
    """Write a YAML scope file under tmp_path and return its path."""

    def _write(name: str, data: Dict[str, Any]) -> str:
        path = tmp_path / f"{name}.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture(autouse=True)
def _reset_redaction_filter():
    yield
    secret_redaction_filter.clear()


@pytest.fixture
def make_provider() -> Callable[..., Dict[str, Any]]:
    """Build a minimal valid raw endpoint record."""

    def _make(name: str, **extra: Any) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "type": "openai-chat-completion",
            "name": name,
            "baseUrl": f"https://{name}.example.com/v1",
        }
        record.update(extra)
        return record

    return _make
