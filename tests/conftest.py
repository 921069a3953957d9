# tests/conftest.py
import os
import sys
import tempfile

import pytest

# Project root on sys.path so tests import 'bikebench' without installing it.
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Keep the log file and the import-time storage directory out of the user's profile.
_session_dir = tempfile.mkdtemp(prefix="bikebench-tests-")
os.environ.setdefault("LOCALAPPDATA", _session_dir)
os.environ.setdefault("BIKEBENCH_LOG_FILE", os.path.join(_session_dir, "bikebench.log"))


# every test gets its own empty database
@pytest.fixture(autouse=True)
def fresh_database(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    from bikebench.data import database
    database.initialize()
    return database.get_database_path()
