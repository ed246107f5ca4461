import os

import pytest

from fakes import MemoryArchiveStore


@pytest.fixture
def memory_store():
    return MemoryArchiveStore()


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at a temp dir and drop DEBSNAPGIT_* variables."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("DEBSNAPGIT_"):
            monkeypatch.delenv(key)
    return tmp_path
