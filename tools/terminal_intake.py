#!/usr/bin/env python3
"""
terminal_intake.py

Purpose:
  Register a delivery of POS terminals with the inventory API in one call.
  All serials share one model name and entry date. The server rejects the
  whole batch if any serial is blank, repeated, or already stored.

API:
  Base: http://localhost:8089/api/v1
  Create: POST /devices/batch
          body: {"model_name": "...", "serial_numbers": [...], "entry_date": "YYYY-MM-DD"}
  Auth: X-API-Key: <token> (only when the server has API_KEY set)

Auth precedence:
  1) --token <value> (CLI)
  2) env TERMINAL_INVENTORY_API_KEY

Examples:
  python terminal_intake.py "PAX A920" PAX-001 PAX-002 PAX-003
  python terminal_intake.py "PAX A920" --file packing_list.txt --entry-date 2024-05-01
  TERMINAL_INVENTORY_API_KEY=YOUR_TOKEN python terminal_intake.py "Verifone V240m" VF-1

Exit codes:
  0 = success (all devices created)
  1 = handled application error (validation, duplicate serial, bad input)
  2 = network/HTTP error
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

DEFAULT_BASE_URL = "http://localhost:8089/api/v1"
RESOURCE_PATH = "devices/batch"
TOKEN_ENV = "TERMINAL_INVENTORY_API_KEY"


class IntakeError(Exception):
    """The API understood the request and refused it."""

    def __init__(self, code: str, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Add a batch of POS terminals of one model to inventory.")
    p.add_argument("model_name", help="Terminal model (e.g., 'PAX A920').")
    p.add_argument("serials", nargs="*", help="Serial numbers to add.")
    p.add_argument("-f", "--file", type=Path, default=None,
                   help="Read serial numbers from a file (one per line, or comma separated).")
    p.add_argument("--entry-date", default=None,
                   help="Entry date YYYY-MM-DD (default: server's today).")
    p.add_argument("--base-url", default=DEFAULT_BASE_URL,
                   help=f"Base API URL (default: {DEFAULT_BASE_URL})")
    p.add_argument("--token", default=None,
                   help=f"API token (X-API-Key). Overrides env {TOKEN_ENV}.")
    p.add_argument("--timeout", type=float, default=15.0,
                   help="HTTP timeout in seconds (default: 15)")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Verbose logging to stderr.")
    return p.parse_args(argv)


def resolve_token(cli_token: Optional[str]) -> Optional[str]:
    if cli_token:
        return cli_token
    return os.getenv(TOKEN_ENV) or None


def collect_serials(cli_serials: Sequence[str], file: Optional[Path]) -> List[str]:
    """Serials from the command line followed by those in ``file``.

    Duplicates are passed through untouched; the server reports them.
    """

    serials = [s.strip() for s in cli_serials if s.strip()]
    if file is not None:
        text = file.read_text(encoding="utf-8")
        for line in text.splitlines():
            for chunk in line.split(","):
                chunk = chunk.strip()
                if chunk:
                    serials.append(chunk)
    return serials


def build_headers(token: Optional[str]) -> Dict[str, str]:
    headers = {"Accept": "application/json", "Content-Type": "application/json"}
    if token:
        headers["X-API-Key"] = token
    return headers


def vprint(enabled: bool, *args: Any) -> None:
    if enabled:
        print(*args, file=sys.stderr)


def api_add_batch(session: requests.Session, base_url: str, token: Optional[str], *,
                  model_name: str, serials: Sequence[str], entry_date: Optional[str],
                  timeout: float, verbose: bool = False) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}/{RESOURCE_PATH}"
    payload: Dict[str, Any] = {"model_name": model_name, "serial_numbers": list(serials)}
    if entry_date:
        payload["entry_date"] = entry_date
    vprint(verbose, f"POST {url} json={payload}")
    r = session.post(url, headers=build_headers(token), json=payload, timeout=timeout)
    if r.status_code in (200, 201):
        return r.json()
    try:
        body = r.json()
    except ValueError:
        body = None
    # 4xx answers carry the {code, message, details} error envelope.
    if isinstance(body, dict) and "code" in body and 400 <= r.status_code < 500:
        raise IntakeError(body["code"], body.get("message") or "", body.get("details"))
    detail = json.dumps(body, indent=2) if body is not None else r.text
    raise requests.HTTPError(f"Batch add failed ({r.status_code}): {detail}", response=r)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        serials = collect_serials(args.serials, args.file)
    except OSError as e:
        print(f"ERROR: cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    if not serials:
        print("ERROR: no serial numbers given (pass them as arguments or with --file).", file=sys.stderr)
        return 1

    session = requests.Session()
    try:
        result = api_add_batch(
            session,
            args.base_url,
            resolve_token(args.token),
            model_name=args.model_name,
            serials=serials,
            entry_date=args.entry_date,
            timeout=args.timeout,
            verbose=args.verbose,
        )
    except IntakeError as e:
        print(f"ERROR [{e.code}]: {e.message}", file=sys.stderr)
        if e.details:
            print(json.dumps(e.details, indent=2), file=sys.stderr)
        return 1
    except requests.exceptions.RequestException as e:
        print(f"NETWORK_ERROR: {e}", file=sys.stderr)
        return 2
    finally:
        session.close()

    print(json.dumps({
        "status": "created",
        "model_name": args.model_name,
        "created": result.get("created", 0),
        "device_ids": [d.get("id") for d in result.get("devices", [])],
    }, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
