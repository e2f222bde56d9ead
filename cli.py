from __future__ import annotations

import argparse
import json
import sys

import requests

PREFIX = "/v1/swarm-listener"


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Swarm Listener CLI")
    p.add_argument("--api", default="http://localhost:8080", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("services", help="List services tracked by the listener")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--service", help="Only events for this service")

    sub.add_parser("notify", help="Re-send create notifications for all eligible services")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "services":
        _print(requests.get(f"{base}{PREFIX}/services", timeout=10).json())
        return 0

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.service:
            params["service"] = args.service
        _print(requests.get(f"{base}{PREFIX}/events", params=params, timeout=10).json())
        return 0

    if args.cmd == "notify":
        # Deliveries retry with backoff on the server side; allow for it.
        r = requests.post(f"{base}{PREFIX}/notify-services", timeout=300)
        _print(r.json())
        return 0 if r.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
