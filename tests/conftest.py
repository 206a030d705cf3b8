import os
import sys
import tempfile

# Settings are read once at import, so the test environment is fixed before any resumate import.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "../"))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

_DATA_DIR = tempfile.mkdtemp(prefix="resumate-tests-")
os.environ.setdefault("RECORDS_DB_PATH", os.path.join(_DATA_DIR, "resumes.db"))
os.environ.setdefault("OBJECT_STORE_DIR", os.path.join(_DATA_DIR, "objects"))
os.environ.setdefault("ANALYTICS_DB_PATH", os.path.join(_DATA_DIR, "analytics.db"))
os.environ.setdefault("ANALYTICS_ENABLED", "1")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ["API_KEY"] = ""
