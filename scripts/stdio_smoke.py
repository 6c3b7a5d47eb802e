#!/usr/bin/env python3
"""stdio transport smoke checks against a real child process.

Usage:
  python scripts/stdio_smoke.py
  python scripts/stdio_smoke.py --connection-string "mssql+pyodbc://..."

Without a connection string a throwaway SQLite file is used, which is
enough to exercise framing, dispatch and the SQL policy checks.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path


REQUESTS = [
    ("initialize", '{"jsonrpc":"2.0","id":1,"method":"initialize","params":{}}', lambda r: r["result"]["serverInfo"]),
    ("notification", '{"jsonrpc":"2.0","method":"notifications/initialized"}', None),
    ("tools/list", '{"jsonrpc":"2.0","id":2,"method":"tools/list"}', lambda r: len(r["result"]["tools"]) == 3),
    ("malformed", "{not json", lambda r: r["id"] is None and r["error"]["code"] == -32700),
    (
        "ddl blocked",
        '{"jsonrpc":"2.0","id":3,"method":"tools/call","params":{"name":"sql.query","params":{"sql":"DROP TABLE X"}}}',
        lambda r: "DDL operations" in r["error"]["message"],
    ),
    (
        "host blocked",
        '{"jsonrpc":"2.0","id":4,"method":"tools/call","params":{"name":"http.call","arguments":{"url":"https://blocked.example/"}}}',
        lambda r: "not in the allowed hosts list" in r["error"]["message"],
    ),
    (
        "select",
        '{"jsonrpc":"2.0","id":5,"method":"tools/call","params":{"name":"sql.query","arguments":{"sql":"SELECT 1 AS one"}}}',
        lambda r: json.loads(r["result"]["content"][0]["text"])["rowCount"] == 1,
    ),
]


async def run_smoke(connection_string: str, config_path: Path) -> list[str]:
    errors: list[str] = []
    env = dict(os.environ)
    env["SQLAPIGATE_SQL__CONNECTION_STRING"] = connection_string
    env["SQLAPIGATE_LOGGING__FILE_ENABLED"] = "false"

    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "sqlapigate",
        "stdio",
        "--config",
        str(config_path),
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
        env=env,
    )
    payload = "".join(line + "\n" for _, line, _ in REQUESTS).encode("utf-8")
    stdout, _ = await asyncio.wait_for(proc.communicate(payload), timeout=60)

    lines = [line for line in stdout.decode("utf-8").splitlines() if line.strip()]
    expected = [(name, check) for name, _, check in REQUESTS if check is not None]
    if proc.returncode != 0:
        errors.append(f"process exited with {proc.returncode}")
    if len(lines) != len(expected):
        errors.append(f"expected {len(expected)} response lines, got {len(lines)}")

    for (name, check), line in zip(expected, lines):
        try:
            response = json.loads(line)
        except ValueError:
            errors.append(f"{name}: non-JSON output on stdout: {line[:120]}")
            continue
        try:
            ok = bool(check(response))
        except (KeyError, TypeError, IndexError) as e:
            errors.append(f"{name}: unexpected response shape ({e}): {line[:200]}")
            continue
        if not ok:
            errors.append(f"{name}: check failed: {line[:200]}")
    return errors


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--connection-string", default="", help="Defaults to a temporary SQLite database")
    args = parser.parse_args()

    with tempfile.TemporaryDirectory() as tmp:
        tmp_path = Path(tmp)
        connection_string = args.connection_string or f"sqlite:///{tmp_path / 'smoke.db'}"
        errors = asyncio.run(run_smoke(connection_string, tmp_path / "config.json"))

    if errors:
        print("stdio smoke errors:")
        for err in errors:
            print(f"  ERROR: {err}")
        return 1
    print("stdio_smoke: PASS")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
