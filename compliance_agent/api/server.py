"""
Run the compliance API under uvicorn.

Defaults come from COMPLIANCE_API_HOST, COMPLIANCE_API_PORT,
COMPLIANCE_API_RELOAD and COMPLIANCE_API_LOG_LEVEL; command-line flags win.

    python -m compliance_agent.api.server --port 9000
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import uvicorn
from dotenv import load_dotenv

from compliance_agent.config.settings import ServerConfig, resolve_server_config

APP_FACTORY = "compliance_agent.api.app:create_app"

logger = logging.getLogger(__name__)


def parse_args(defaults: ServerConfig, argv: Optional[List[str]] = None) -> ServerConfig:
    parser = argparse.ArgumentParser(description="Serve the compliance analysis API")
    parser.add_argument("--host", default=defaults.host)
    parser.add_argument("--port", type=int, default=defaults.port)
    parser.add_argument("--reload", action=argparse.BooleanOptionalAction, default=defaults.reload)
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        choices=["critical", "error", "warning", "info", "debug"],
    )
    args = parser.parse_args(argv)
    return ServerConfig(host=args.host, port=args.port, reload=args.reload, log_level=args.log_level)


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    config = parse_args(resolve_server_config(), argv)
    logger.info("Starting compliance API on %s:%d (reload=%s)", config.host, config.port, config.reload)
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level=config.log_level,
    )


if __name__ == "__main__":
    main()
