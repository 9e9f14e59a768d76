#!/usr/bin/env python3
"""
Start the knowledge graph HTTP API with uvicorn.
"""

import argparse
import sys

import uvicorn

from qdrant_memory.api.main import create_app
from qdrant_memory.core.config import Settings


def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Run the knowledge graph API")
    parser.add_argument("--host", default=settings.api_host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Port to listen on")
    args = parser.parse_args()

    issues = settings.validate()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        sys.exit(1)

    uvicorn.run(create_app(settings=settings), host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
