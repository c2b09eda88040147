import os

import pytest

MB = 1024 * 1024


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MAILSENDER_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("MAILSENDER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_file(tmp_path):
    """Create a file of the given size (sparse, so large sizes are cheap)."""

    def factory(name: str, size: int = 16, directory=None) -> str:
        path = (directory or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            if size <= 64:
                f.write(b"x" * size)
            else:
                f.truncate(size)
        return str(path)

    return factory
