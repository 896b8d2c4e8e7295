import os
import sys
import tempfile

# keep test logs out of the project tree; must run before config is imported
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="order_files_logs_"))
os.environ.setdefault("LOG_TO_CONSOLE", "0")

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
