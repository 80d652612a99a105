"""CLI entry point for dbaas-rest server."""

import argparse
import logging
import os

import uvicorn

from ._app import create_app
from ._config import load_manager_from_yaml
from ._connections import EngineConnector
from ._lifecycle import DEFAULT_ENGINE, LifecycleManager


def main() -> None:
    parser = argparse.ArgumentParser(description="dbaas REST API server")
    parser.add_argument(
        "--config",
        help="Path to engines YAML config file",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3333,
        help="Port to listen on (default: 3333)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--cors-origins",
        nargs="*",
        help="Allowed CORS origins",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Logging level (default: info)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.config:
        manager = load_manager_from_yaml(args.config)
    else:
        connector = EngineConnector()
        engine_url = os.environ.get("DBAAS_ENGINE_URL")
        if engine_url:
            connector.register(DEFAULT_ENGINE, engine_url)
        else:
            print(
                "Warning: no --config given and DBAAS_ENGINE_URL is not set; "
                "every create will fail with ConnectFailure."
            )
        manager = LifecycleManager(connector)

    print(f"Engines: {', '.join(manager.connector.list_engines()) or '(none)'}")

    app = create_app(manager, cors_origins=args.cors_origins)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
