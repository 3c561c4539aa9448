from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Optional

from fm_script_client import ScriptClientError, ScriptError, create_client_from_env
from fm_script_client.logging import setup_logging


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(name)
    return val if val else default


def _print_step(title: str) -> None:
    print(f"\n== {title}")


def _fail(msg: str) -> int:
    print(f"FAILED: {msg}")
    return 1


async def run_smoke_test() -> int:
    # --- Config ---
    script = _env("TEST_SCRIPT")
    if not script:
        return _fail("Missing TEST_SCRIPT (name of a script to run).")
    raw_param = _env("TEST_SCRIPT_PARAM")
    styles = (_env("TEST_API_STYLES", "odata") or "").split(",")

    try:
        client = create_client_from_env()
    except ScriptClientError as exc:
        return _fail(str(exc))

    print("Config:")
    print(f"  base_url: {client.connection.base_url}")
    print(f"  database: {client.connection.database}")
    print(f"  script: {script}")
    print(f"  styles: {', '.join(styles)}")

    parameter = json.loads(raw_param) if raw_param else None

    async with client:
        for style in styles:
            _print_step(f"Run {script} via {style.strip()}")
            try:
                result = await client.execute_script(script, parameter, style.strip())
            except ScriptError as exc:
                return _fail(f"script error {exc.code}: {exc.data}")
            except ScriptClientError as exc:
                return _fail(f"{type(exc).__name__}: {exc}")
            print(f"  result: {json.dumps(result)}")

    print("\nOK")
    return 0


def main() -> None:
    setup_logging(_env("LOG_LEVEL", "WARNING") or "WARNING")
    sys.exit(asyncio.run(run_smoke_test()))


if __name__ == "__main__":
    main()
