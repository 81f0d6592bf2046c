"""
Pytest Configuration

Shared fixtures isolating the process-wide singletons (settings cache,
admission gate registry, HTTP client) and the ``CRPT_*`` environment so each
test starts from defaults.
"""

from __future__ import annotations

import os
from typing import Iterator

import pytest

from CrptApi.network.client import reset_http_client
from CrptApi.ratelimit.manager import reset_admission_gates
from CrptApi.settings import invalidate_settings_cache


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Strip ``CRPT_*`` variables and reset singletons around every test."""

    for key in list(os.environ):
        if key.upper().startswith("CRPT_"):
            monkeypatch.delenv(key, raising=False)
    invalidate_settings_cache()
    reset_admission_gates()
    reset_http_client()
    yield
    invalidate_settings_cache()
    reset_admission_gates()
    reset_http_client()
