#!/usr/bin/env python3
"""Send a query to the gateway from the command line. Prints both provider answers, or recent history."""
import argparse
import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from dualquery.core.config.loader import load_app_config, resolve_config_path
from dualquery.core.exceptions import ConfigError
from dualquery.storage.factory import build_conversation_store
from dualquery.storage.json_store import EXPORT_LIMIT

GATEWAY_URL = os.environ.get("GATEWAY_BASE_URL", "http://127.0.0.1:8000")

PANE_TITLES = (("primary_response", "Primary"), ("secondary_response", "Search-augmented"))


def _trunc(s: str, max_len: int = 100) -> str:
    s = str(s)
    return (s[:max_len] + "…") if len(s) > max_len else s


def _trace_request(method: str, url: str, body: dict | None, trace: bool) -> None:
    if not trace:
        return
    print(f"[REQUEST] {method} {url}", flush=True)
    if body is not None:
        print("[REQUEST BODY]", flush=True)
        print(json.dumps(body, indent=2), flush=True)
    print(flush=True)


def _trace_response(status: int, body: Any, trace: bool, max_body_len: int = 2000) -> None:
    if not trace:
        return
    print(f"[RESPONSE] {status}", flush=True)
    raw = json.dumps(body, indent=2) if isinstance(body, (dict, list)) else str(body)
    if len(raw) > max_body_len:
        raw = raw[:max_body_len] + "\n… (truncated)"
    print(raw, flush=True)
    print("---", flush=True)


def _body(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text


def _when(ts: int) -> str:
    return datetime.fromtimestamp(ts / 1000).isoformat(timespec="seconds")


def send_query(base: str, query: str, trace: bool) -> int:
    url = f"{base}/query"
    body = {"query": query}
    _trace_request("POST", url, body, trace)
    r = httpx.post(url, json=body, timeout=120)
    data = _body(r)
    _trace_response(r.status_code, data, trace)
    if r.status_code == 400:
        print("Rejected:", data.get("detail") if isinstance(data, dict) else data, file=sys.stderr)
        return 2
    r.raise_for_status()
    print("Query:", query, flush=True)
    print("Conversation:", data.get("conversation_id"), f"({data.get('status')})", flush=True)
    for key, title in PANE_TITLES:
        print("---", flush=True)
        print(f"{title}:", flush=True)
        print(data.get(key, ""), flush=True)
    return 0


def show_history(base: str, limit: int, trace: bool) -> int:
    url = f"{base}/conversations"
    _trace_request("GET", f"{url}?limit={limit}", None, trace)
    r = httpx.get(url, params={"limit": limit}, timeout=10)
    data = _body(r)
    _trace_response(r.status_code, data, trace)
    r.raise_for_status()
    if not data:
        print("No conversations yet.", flush=True)
    for item in data:
        print(f"[{_when(item['timestamp'])}] {item['id']}", flush=True)
        print(f"  Q: {_trunc(item['query'], 100)}", flush=True)
        for key, title in PANE_TITLES:
            print(f"  {title}: {_trunc(item[key], 150)}", flush=True)
    return 0


def export_history(path: str, config_path: str, limit: int = EXPORT_LIMIT, root: Path = ROOT) -> int:
    """Export recent conversations from the configured store straight to a JSON file (no gateway needed)."""
    try:
        config = load_app_config(config_path, project_root=root)
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1
    store = build_conversation_store(config.storage, project_root=root)
    if not store.export(path, limit):
        print(f"Export to {path} failed.", file=sys.stderr)
        return 1
    print(f"Exported up to {limit} conversations to {path}", flush=True)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Send a query to both providers through the gateway, or list recent conversations.")
    parser.add_argument("query", nargs="*", help="Query text")
    parser.add_argument("--url", default=GATEWAY_URL, help="Gateway base URL")
    parser.add_argument("--history", type=int, metavar="N", help="List the N most recent conversations instead of sending a query")
    parser.add_argument("--trace", action="store_true", help="Print each URL, request body and response")
    parser.add_argument("--export", metavar="PATH", help=f"Write the {EXPORT_LIMIT} most recent conversations to a JSON file and exit")
    parser.add_argument("--config", default=resolve_config_path(), help="App config path, used by --export")
    args = parser.parse_args()
    base = args.url.rstrip("/")

    if args.export:
        sys.exit(export_history(args.export, args.config))

    query = " ".join(args.query).strip()
    if args.history is None and not query:
        print('Usage: python scripts/query_cli.py "Your question here"', file=sys.stderr)
        sys.exit(1)

    try:
        if args.history is not None:
            code = show_history(base, args.history, args.trace)
        else:
            code = send_query(base, query, args.trace)
    except httpx.ConnectError:
        print(f"Cannot reach gateway at {args.url}. Is it running?", file=sys.stderr)
        sys.exit(1)
    except httpx.HTTPError as e:
        print(e, file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
