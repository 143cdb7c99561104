"""Command line entry for the Expat Vault service."""

from __future__ import annotations

import argparse
import logging

import uvicorn


def run_server(host: str, port: int, reload: bool = False) -> None:
    uvicorn.run("expatvault.api.main:app", host=host, port=port, reload=reload)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Expat Vault API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper())
    run_server(args.host, args.port, reload=args.reload)


if __name__ == "__main__":
    main()
