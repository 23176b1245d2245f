from __future__ import annotations

import argparse
import json
import logging
import os

from .actions import clear_test_data, seed_test_data
from .app import create_app
from .db import StorageClient, init_db


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the form builder service")
    parser.add_argument("command", choices=["serve", "init-db", "seed", "clear"], nargs="?", default="serve")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--db", default=os.environ.get("FORM_BUILDER_DB_PATH", "./data.db"))
    parser.add_argument("--atomic", action="store_true", help="save each submitted form in one transaction")
    args = parser.parse_args()

    logging.basicConfig(level=os.environ.get("APP_LOG_LEVEL", "INFO").upper())

    if args.command == "serve":
        app = create_app(args.db, atomic=args.atomic or None)
        app.run(host=args.host, port=args.port, debug=False)
        return

    init_db(args.db)
    if args.command == "init-db":
        return

    with StorageClient(args.db) as client:
        result = seed_test_data(client) if args.command == "seed" else clear_test_data(client)
    print(json.dumps(result, indent=2))
    if not result["success"]:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
