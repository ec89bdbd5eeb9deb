import os
import stat
import sys
from pathlib import Path

import pytest

# The tools live as plain scripts under python/
_SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "python"
if str(_SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(_SCRIPTS_DIR))

import du  # noqa: E402


def fake_block_usage(stats):
    """Directories cost 4K, symlinks 1K, files their size rounded up to 1K."""
    if stat.S_ISDIR(stats.st_mode):
        return 4
    if stat.S_ISLNK(stats.st_mode):
        return 1
    return -(-stats.st_size // 1024)


@pytest.fixture
def fake_blocks(monkeypatch):
    monkeypatch.setattr(du, "block_usage", fake_block_usage)
    return fake_block_usage


@pytest.fixture
def tree(tmp_path):
    """
    root/        4
      a.txt      2
      sub/       4
        b.txt    1
    """
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"x" * 2048)
    (root / "sub" / "b.txt").write_bytes(b"x" * 1024)
    return root


