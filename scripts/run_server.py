#!/usr/bin/env python3
from __future__ import annotations

import argparse

import uvicorn

from app.config import StoreSettings
from app.main import create_app


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the resource mock server.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args()

    settings = StoreSettings.from_env()
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
