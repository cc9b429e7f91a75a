#!/usr/bin/env python3
"""
Inspect the recording upload queue through the debug endpoints.
Requires ALLOW_DEBUG_ENDPOINTS=true on the target service.

Usage:
    python3 scripts/recording_queue.py
    python3 scripts/recording_queue.py --recording <recording-id>
    python3 scripts/recording_queue.py --base-url https://projecthub.example.com
"""
import argparse
import json
import sys
from pathlib import Path

import httpx


def load_env_var(key: str, env_file_name: str = ".env") -> str:
    env_file = Path(__file__).parent.parent / env_file_name
    if env_file.exists():
        for line in env_file.read_text().splitlines():
            if line.startswith(f"{key}="):
                return line.split("=", 1)[1].strip()
    return ""


def main():
    parser = argparse.ArgumentParser(description="Show recording queue state")
    parser.add_argument("--base-url", default=load_env_var("BASE_URL") or "http://localhost:8000")
    parser.add_argument("--recording", help="Show a single recording")
    args = parser.parse_args()

    path = f"/debug/recordings/{args.recording}" if args.recording else "/debug/queue"
    with httpx.Client(timeout=30.0) as client:
        resp = client.get(args.base_url.rstrip("/") + path)
    if resp.status_code == 404:
        print("❌ Not found (is ALLOW_DEBUG_ENDPOINTS enabled?)")
        sys.exit(1)
    resp.raise_for_status()
    print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
