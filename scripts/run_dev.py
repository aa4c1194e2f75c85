"""Run the FastAPI app with uvicorn for local development.

Host, port and reload can be overridden with HOST, PORT and RELOAD.
"""
import os
import sys
from pathlib import Path

import uvicorn

ROOT = Path(__file__).resolve().parents[1]


def main() -> int:
    # allow running from a checkout without `pip install -e .`
    if str(ROOT) not in sys.path:
        sys.path.insert(0, str(ROOT))

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "1").strip().lower() in {"1", "true", "yes", "y", "on"}

    print(f"Starting supportdesk on http://{host}:{port}/ui")
    uvicorn.run("supportdesk.main:app", host=host, port=port, reload=reload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
