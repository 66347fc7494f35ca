import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so tests can import local modules
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DATA_DIR = Path(__file__).resolve().parent / "data"
SAMPLE1 = DATA_DIR / "sample1.mk"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    # Keep the developer's environment out of the config under test
    monkeypatch.delenv("ERGOMCUTOOL_BACKUPS_LIMIT", raising=False)
    monkeypatch.delenv("ERGOMCUTOOL_LOG_LEVEL", raising=False)
    yield


@pytest.fixture
def sample1_path():
    return SAMPLE1


@pytest.fixture
def sample1():
    from ergomcutool.mkf import Makefile
    return Makefile.from_file(SAMPLE1)


@pytest.fixture
def project(tmp_path):
    """A project directory holding a copy of the sample Makefile."""
    mk = tmp_path / "Makefile"
    mk.write_bytes(SAMPLE1.read_bytes())
    return tmp_path
