#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Usage:
  python invoke_snapmaster.py capture --interval 4h
  python invoke_snapmaster.py page_info --url "https://www.tradingview.com/chart/?symbol=BINANCE:BTCUSDT"
  python invoke_snapmaster.py theme --headed
  # Full payload (id/timestamp are filled in when missing)
  python invoke_snapmaster.py capture --payload '{"interval":"1D"}'

  # On Windows PowerShell, prefer file-based payloads to avoid quoting issues:
  python invoke_snapmaster.py capture --payload-file .\tmp_payload.json
"""
from __future__ import annotations

import argparse
import json
import subprocess
import sys
import time
import uuid
from pathlib import Path

SERVER = [sys.executable, "-m", "snapmaster.server"]

MESSAGE_TYPES = {
    "capture": "CAPTURE",
    "page_info": "GET_PAGE_INFO",
    "theme": "GET_THEME",
}


def build_message(kind: str, payload: dict | None = None, interval: str | None = None) -> dict:
    payload = dict(payload or {})
    if kind == "capture":
        if interval:
            payload["interval"] = interval
        if "interval" not in payload:
            raise ValueError("capture needs --interval or an interval in the payload")
        payload.setdefault("id", str(uuid.uuid4()))
        payload.setdefault("timestamp", int(time.time() * 1000))
    return {"id": int(time.time()), "type": MESSAGE_TYPES[kind], "payload": payload}


def run_server(message: dict, server_args: list[str]) -> int:
    payload_json = json.dumps(message, ensure_ascii=False) + "\n"
    proc = subprocess.run(
        SERVER + server_args,
        input=payload_json.encode("utf-8"),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    sys.stdout.write(proc.stdout.decode("utf-8", errors="ignore"))
    if proc.returncode != 0:
        sys.stderr.write(proc.stderr.decode("utf-8", errors="ignore"))
    return proc.returncode


def main(argv=None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("kind", choices=sorted(MESSAGE_TYPES), help="message to send")
    ap.add_argument("--interval", help="target interval for capture (1m 5m 15m 1h 4h 1D 1W)")
    ap.add_argument("--payload", help="JSON string for the payload")
    ap.add_argument("--payload-file", help="Path to a JSON file for the payload")
    ap.add_argument("--url", help="chart URL to open")
    ap.add_argument("--headed", action="store_true", help="show the browser window")
    ap.add_argument("--output-dir", help="directory for saved PNGs")
    ns = ap.parse_args(argv)

    if ns.payload and ns.payload_file:
        print("[ERROR] specify only one of --payload or --payload-file", file=sys.stderr)
        sys.exit(2)

    try:
        if ns.payload_file:
            payload = json.loads(Path(ns.payload_file).read_text(encoding="utf-8"))
        else:
            payload = json.loads(ns.payload) if ns.payload else {}
        if not isinstance(payload, dict):
            raise ValueError("payload must be a JSON object")
        message = build_message(ns.kind, payload, ns.interval)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(2)

    server_args = []
    if ns.url:
        server_args += ["--url", ns.url]
    if ns.headed:
        server_args.append("--headed")
    if ns.output_dir:
        server_args += ["--output-dir", ns.output_dir]

    sys.exit(run_server(message, server_args))


if __name__ == "__main__":
    main()
