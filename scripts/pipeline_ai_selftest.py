#!/usr/bin/env python3
from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]


def _die(msg: str) -> None:
    raise SystemExit(f"SELFTEST_FAIL: {msg}")


def _requests() -> str:
    lines = [
        json.dumps({"jsonrpc": "2.0", "id": 1, "method": "list_languages"}),
        "not json at all",
        json.dumps({"jsonrpc": "2.0", "id": 2, "method": "list_platforms"}),
        json.dumps({"jsonrpc": "2.0", "id": 3, "method": "tools/list"}),
        json.dumps({"jsonrpc": "2.0", "id": 4, "method": "frobnicate"}),
        json.dumps(
            {
                "jsonrpc": "2.0",
                "id": 5,
                "method": "generate_pipeline",
                "params": {"description": "Build and test a web app", "platform": "jenkins"},
            }
        ),
        json.dumps({"jsonrpc": "2.0", "id": 6, "method": "generate_pipeline", "params": {}}),
    ]
    return "\n".join(lines) + "\n"


def main() -> int:
    proc = subprocess.run(
        [sys.executable, "-m", "services.pipeline_ai.main", "--provider", "offline", "--env-file", "/dev/null"],
        cwd=str(ROOT),
        input=_requests(),
        capture_output=True,
        text=True,
        timeout=60,
    )
    if proc.returncode != 0:
        print(proc.stderr, file=sys.stderr)
        _die(f"server exited with {proc.returncode}")
    if "Pipeline AI MCP Server running" not in proc.stderr:
        _die("startup banner missing from stderr")

    responses = [json.loads(line) for line in proc.stdout.splitlines() if line.strip()]
    by_id = {r.get("id"): r for r in responses}
    if len(responses) != 6 or sorted(by_id) != [1, 2, 3, 4, 5, 6]:
        _die(f"expected six correlated responses, got ids {[r.get('id') for r in responses]}")
    for r in responses:
        if ("result" in r) == ("error" in r):
            _die(f"response must carry exactly one of result/error: {r}")

    if len(by_id[1]["result"]["languages"]) != 7:
        _die("list_languages must return seven languages")
    if len(by_id[2]["result"]["platforms"]) != 5:
        _die("list_platforms must return five platforms")
    names = [t["name"] for t in by_id[3]["result"]["tools"]]
    if names != ["generate_pipeline", "list_languages", "list_platforms"]:
        _die(f"unexpected tools/list names: {names}")
    if by_id[4].get("error") != {"code": -32601, "message": "Method not found: frobnicate"}:
        _die(f"unexpected unknown-method error: {by_id[4]}")
    if not isinstance(by_id[5].get("result"), str) or not by_id[5]["result"].strip():
        _die("generate_pipeline must fall back to non-empty text")
    if (by_id[6].get("error") or {}).get("code") != -32603:
        _die(f"missing description must be an internal error: {by_id[6]}")

    print("SELFTEST_OK")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except subprocess.TimeoutExpired as e:
        print(f"ERROR: server did not exit: {e}", file=sys.stderr)
        raise SystemExit(1)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        raise SystemExit(1)
