import os
from datetime import datetime, timezone
from typing import Dict, List

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from models import FileSettings

ENV = os.getenv("ENV", "TEST").upper()

DEFAULTS = {
    "TEST": {
        "SL_URL": "https://sap-test:50000/b1s/v1",
        "COMPANY_DB": "SBODEMO_TEST",
        "SL_USER": "manager",
        "SL_PASS": "",
    },
    "LIVE": {
        "SL_URL": "https://sap-live:50000/b1s/v1",
        "COMPANY_DB": "SBO_PROD",
        "SL_USER": "manager",
        "SL_PASS": "",
    }
}

cfg = DEFAULTS["LIVE"] if ENV == "LIVE" else DEFAULTS["TEST"]


def _split(value: str, sep: str) -> List[str]:
    return [v.strip() for v in value.split(sep) if v.strip()]


def _mapping(value: str) -> Dict[str, str]:
    # "C0001=Acme Spa;C0002=Rossi Srl"
    out: Dict[str, str] = {}
    for pair in _split(value, ";"):
        key, sep, val = pair.partition("=")
        if sep and key.strip():
            out[key.strip()] = val.strip()
    return out


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ---------------- SAP Service Layer ----------------
SL_URL       = os.getenv("SL_URL", cfg["SL_URL"]).rstrip("/")
COMPANY_DB   = os.getenv("COMPANY_DB", cfg["COMPANY_DB"])
SL_USER      = os.getenv("SL_USER", cfg["SL_USER"])
SL_PASS      = os.getenv("SL_PASS", cfg["SL_PASS"])

# Sticky-session cookies some load-balanced Service Layer installs need
ROUTE_ID_OVERRIDE = os.getenv("ROUTE_ID_OVERRIDE") or None
PRE_LOGIN_B1SESSION = os.getenv("PRE_LOGIN_B1SESSION") or None

# Self-signed Service Layer certificates (trusted networks only)
ALLOW_INSECURE_SSL = _flag("ALLOW_INSECURE_SSL")
HTTP_TIMEOUT = int(os.getenv("HTTP_TIMEOUT", "30"))

# Order line user fields holding extra file names (copied by exact name)
EXTRA_FILE_FIELDS = _split(os.getenv("EXTRA_FILE_FIELDS", "U_ParNdSip,U_ParNdiv1"), ",")

# ---------------- Files ----------------
SEARCH_FOLDERS = _split(os.getenv("SEARCH_FOLDERS", ""), ";")
DESTINATION_BASE_FOLDER = os.getenv("DESTINATION_BASE_FOLDER", "")
FILE_SEARCH_PATTERN = os.getenv("FILE_SEARCH_PATTERN", "{ItemCode}*.*")

CLIENT_FOLDER_MAPPINGS = _mapping(os.getenv("CLIENT_FOLDER_MAPPINGS", ""))
DEFAULT_CLIENT_FOLDER = os.getenv("DEFAULT_CLIENT_FOLDER", "Adotta Italia Srl")

WAREHOUSE_PREFIX_MAPPINGS = _mapping(os.getenv("WAREHOUSE_PREFIX_MAPPINGS", ""))
DEFAULT_WAREHOUSE_PREFIX = os.getenv("DEFAULT_WAREHOUSE_PREFIX", "NA")

# A single unreachable (network) root must not stall the whole order
SEARCH_ROOT_TIMEOUT_SECONDS = float(os.getenv("SEARCH_ROOT_TIMEOUT_SECONDS", "120"))

# Email recipients
ADMIN_EMAILS = _split(os.getenv("ADMIN_EMAILS", ""), ",")

EMAIL_CONFIG = {
    "smtp_server": os.getenv("SMTP_SERVER", "smtp.office365.com"),
    "smtp_port": int(os.getenv("SMTP_PORT", 587)),
    "smtp_username": os.getenv("SMTP_USERNAME", ""),
    "smtp_password": os.getenv("SMTP_PASSWORD", ""),  # set via ENV
    "from_addr": os.getenv("FROM_EMAIL", "order-files@localhost"),
}

# HTTP wrapper (web.py, served by waitress)
WEB_HOST = os.getenv("WEB_HOST", "0.0.0.0")
WEB_PORT = int(os.getenv("WEB_PORT", 8080))

# ---------------- Paths (stable, absolute) ----------------
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Logging
LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))
LOG_FILE = os.getenv("LOG_FILE", "order_files.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()
LOG_TO_CONSOLE = _flag("LOG_TO_CONSOLE", "1")


def file_settings() -> FileSettings:
    return FileSettings(
        search_roots=list(SEARCH_FOLDERS),
        pattern_template=FILE_SEARCH_PATTERN,
        destination_base_folder=DESTINATION_BASE_FOLDER,
        client_folder_mappings=dict(CLIENT_FOLDER_MAPPINGS),
        default_client_folder=DEFAULT_CLIENT_FOLDER,
        warehouse_prefix_mappings=dict(WAREHOUSE_PREFIX_MAPPINGS),
        default_warehouse_prefix=DEFAULT_WAREHOUSE_PREFIX,
        search_root_timeout=SEARCH_ROOT_TIMEOUT_SECONDS,
    )


# -------------- HTTP Session --------------
SESSION = requests.Session()
retries = Retry(
    total=3,
    backoff_factor=2.0,
    status_forcelist=[408, 500, 502, 503, 504],
    allowed_methods=["GET", "POST"],
    raise_on_status=False,
)
SESSION.mount("http://", HTTPAdapter(max_retries=retries))
SESSION.mount("https://", HTTPAdapter(max_retries=retries))
SESSION.headers.update({"Accept": "application/json"})
SESSION.verify = not ALLOW_INSECURE_SSL


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
