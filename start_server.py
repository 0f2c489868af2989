#!/usr/bin/env python3
"""Run the ride pooling API with uvicorn, listening on $PORT (default 8000)."""

import os
import sys
from pathlib import Path

import uvicorn

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))


def main() -> int:
    raw_port = os.environ.get("PORT", "8000")
    try:
        port = int(raw_port)
    except ValueError:
        print(f"Warning: Invalid PORT value '{raw_port}', using default 8000", file=sys.stderr)
        port = 8000

    # Single worker: the in-memory offer store lives in this process
    uvicorn.run(
        "ridepool.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=port,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
