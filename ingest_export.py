from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

import httpx

from tracker_daily.merge import build_series_report

DEFAULT_JSON_PATH = os.getenv("TRACKER_JSON_PATH", "tracker.json")
DEFAULT_API_URL = os.getenv("API_URL", "http://localhost:8765/api/ingest")


def load_payload(path: str) -> dict[str, Any]:
    raw = Path(path).expanduser().resolve().read_text(encoding="utf-8")
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: expected a JSON object at the top level")
    return payload


def dry_run(payload: dict[str, Any]) -> dict[str, Any]:
    series, stats = build_series_report(payload)
    return {
        "days": len(series),
        "firstDate": series[0].date if series else None,
        "lastDate": series[-1].date if series else None,
        "records": stats.record_count,
        "dropped": stats.dropped_count,
    }


def push_payload(payload: dict[str, Any], url: str, api_key: str | None, timeout: float = 60.0) -> dict[str, Any]:
    headers = {"X-Api-Key": api_key} if api_key else {}
    response = httpx.post(url, json=payload, headers=headers, timeout=timeout)
    if response.is_error:
        raise RuntimeError(f"Ingest failed: {response.status_code} {response.text}")
    return response.json()


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Push a tracker export JSON file to the ingest endpoint")
    ap.add_argument("--path", default=DEFAULT_JSON_PATH, help="tracker export JSON file")
    ap.add_argument("--url", default=DEFAULT_API_URL, help="ingest endpoint URL")
    ap.add_argument("--api-key", default=os.getenv("API_KEY"), help="X-Api-Key value (default: $API_KEY)")
    ap.add_argument("--dry-run", action="store_true", help="build the daily series locally, do not send")
    args = ap.parse_args(argv)

    try:
        payload = load_payload(args.path)
        result = dry_run(payload) if args.dry_run else push_payload(payload, args.url, args.api_key)
    except (OSError, ValueError, RuntimeError, httpx.HTTPError) as e:
        print(e, file=sys.stderr)
        return 1

    print("Ingest complete:" if not args.dry_run else "Dry run:", json.dumps(result, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
