"""Repository-wide pytest configuration.

Pins the repository root on ``sys.path`` so ``revshare`` resolves regardless of
the invocation directory, and keeps environment overrides from leaking into
tests that expect the built-in network defaults.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("PYTHONPATH", str(ROOT))


@pytest.fixture(autouse=True)
def _clear_network_override(monkeypatch):
    """Ensure ``REVSHARE_NETWORK_CONFIG`` from the caller's shell is ignored.

    Tests that exercise the override set it explicitly via ``monkeypatch``.
    """

    monkeypatch.delenv("REVSHARE_NETWORK_CONFIG", raising=False)
    yield
