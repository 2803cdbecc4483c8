#!/usr/bin/env python3
"""
Kerjaya API server

Serves the Telegram login API for the Kerjaya job board app.
"""

import argparse

import uvicorn

from kerjaya.config import load_config


def main():
    config = load_config()

    parser = argparse.ArgumentParser(description="Run the Kerjaya API server")
    parser.add_argument("--host", default=config.server.host, help="Bind address")
    parser.add_argument("--port", type=int, default=config.server.port, help="Bind port")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args()

    if not config.telegram.is_configured():
        print("⚠️  TELEGRAM_API_ID / TELEGRAM_API_HASH are not set; logins will fail.")

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=config.server.log_level.lower()
    )


if __name__ == "__main__":
    main()
