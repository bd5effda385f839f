import os

def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val

API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Remote spreadsheet proxy; sync is disabled when the URL is unset.
SHEETS_URL = (os.getenv("SHEETS_URL") or "").strip() or None
SHEETS_SECRET = os.getenv("SHEETS_SECRET") or ""
SHEETS_CAPTCHA_TOKEN = os.getenv("SHEETS_CAPTCHA_TOKEN") or None

SYNC_PULL_RATE_LIMIT = os.getenv("SYNC_PULL_RATE_LIMIT") or "10/minute"
