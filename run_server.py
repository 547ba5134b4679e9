"""Performance test API server entry point.

Usage:
    python run_server.py

    # Custom host/port and pool size:
    python run_server.py --host 0.0.0.0 --port 9000 --workers 20
"""
from __future__ import annotations

import argparse
import logging

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Performance Test API Server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")
    parser.add_argument("--workers", type=int, default=None, help="Background test pool size (default: 10)")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    parser.add_argument("--log-format", default="structured", choices=["structured", "json"])
    args = parser.parse_args()

    import uvicorn

    from perftest_engine.api.config import ApiSettings
    from perftest_engine.api.main import create_app
    from perftest_engine.utils.logging import configure_logging

    configure_logging(args.log_level, args.log_format)

    overrides = {"host": args.host, "port": args.port, "log_level": args.log_level, "log_format": args.log_format}
    if args.workers is not None:
        overrides["worker_pool_size"] = args.workers
        overrides["max_queued_tests"] = max(args.workers, ApiSettings().max_queued_tests)
    settings = ApiSettings(**overrides)
    app = create_app(settings)

    logger.info("Starting Performance Test API on %s:%s", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
