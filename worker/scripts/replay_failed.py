import json, os, sys, time
from pathlib import Path

import requests

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from leadmap.core.config import get_settings  # noqa: E402
from leadmap.core.ingest import FAILED_DIR  # noqa: E402

URL = get_settings().ingest_api_url

if not URL:
    print("INGEST_API_URL is not set; nothing to replay against")
    raise SystemExit(1)

if not FAILED_DIR.is_dir():
    print("No failed folder:", FAILED_DIR)
    raise SystemExit(0)

for fname in sorted(os.listdir(FAILED_DIR)):
    path = FAILED_DIR / fname
    try:
        with open(path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
        # non-2xx spools wrap the original batch together with the response
        if "payload" in payload:
            payload = payload["payload"]
        r = requests.post(URL, json=payload, timeout=10)
        r.raise_for_status()
        print("Replayed", fname, "=>", r.status_code)
        os.remove(path)
    except (OSError, ValueError, requests.RequestException) as e:
        print("Failed to replay", fname, e)
        time.sleep(1)
