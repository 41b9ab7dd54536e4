import os
import sys

import requests


def check(endpoint: str, expected_key: str) -> bool:
    url = f"{BASE_URL}{endpoint}"
    try:
        res = requests.get(url, timeout=10)
    except requests.RequestException:
        print(f"FAIL {endpoint}: request error")
        return False
    if res.status_code != 200:
        print(f"FAIL {endpoint}: HTTP {res.status_code}")
        return False
    if expected_key not in res.json():
        print(f"FAIL {endpoint}: missing '{expected_key}'")
        return False
    print(f"OK   {endpoint}")
    return True


BASE_URL = os.getenv("EQUIPTRAK_API_BASE_URL", "http://127.0.0.1:8000").rstrip("/") + "/api"

ok = True
ok = check("/test", "message") and ok
ok = check("/health", "status") and ok

sys.exit(0 if ok else 1)
