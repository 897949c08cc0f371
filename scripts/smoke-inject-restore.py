#!/usr/bin/env python3
"""
End-to-end smoke run against a live server:
status -> inject (CSS + JS) -> status -> restore -> status.

WARNING: this patches the real target file; it is restored at the end.
"""
import json, os, sys, time
from urllib.request import Request, urlopen
from urllib.error import HTTPError, URLError

BASE = os.environ.get("UI_MODS_BASE", "http://127.0.0.1:8080")

def http_json(method, path, obj=None, timeout=6):
    # every route under /api answers JSON, errors included
    data = json.dumps(obj).encode("utf-8") if obj is not None else None
    req = Request(BASE + path, data=data, headers={"Content-Type": "application/json"}, method=method)
    try:
        with urlopen(req, timeout=timeout) as r:
            code, raw = r.getcode(), r.read()
    except HTTPError as e:
        code, raw = e.code, e.read()
    except URLError as e:
        return None, {"ok": False, "message": f"URLError: {e}"}
    try:
        return code, json.loads(raw)
    except ValueError:
        return code, {"ok": False, "message": "non-json response"}

def wait_status(max_s=10):
    deadline = time.time() + max_s
    last = None
    while time.time() < deadline:
        code, data = http_json("GET", "/api/status", timeout=2)
        last = (code, data)
        if code == 200 and isinstance(data, dict) and data.get("ok"):
            return data["data"]
        time.sleep(0.25)
    raise SystemExit(f"Status never became OK. Last={last}")

def main():
    st = wait_status()
    print("status:", json.dumps(st, indent=2))
    if not st.get("indexExists"):
        raise SystemExit(f"target missing: {st.get('indexPath')}")

    code, res = http_json("POST", "/api/inject", {})
    print("\nempty inject:", code, res)
    if code != 400 or res.get("ok"):
        raise SystemExit("empty inject should be rejected with 400")

    payload = {
        "cssText": "/* ui-mods smoke */ body{ outline: 2px dashed #f59e0b; }",
        "jsText": "console.log('ui-mods smoke');",
    }
    code, res = http_json("POST", "/api/inject", payload, timeout=10)
    print("\ninject:", code, res)
    if code != 200 or not res.get("ok"):
        raise SystemExit("inject failed")

    st = wait_status()
    print("backupExists:", st.get("backupExists"), "backupMtime:", st.get("backupMtime"))
    if not st.get("backupExists"):
        raise SystemExit("inject did not leave a backup behind")

    code, res = http_json("POST", "/api/restore", {}, timeout=10)
    print("\nrestore:", code, res)
    if code != 200 or not res.get("ok"):
        raise SystemExit("restore failed")

    print("\nOK: smoke passed")
    return 0

if __name__ == "__main__":
    sys.exit(main())
