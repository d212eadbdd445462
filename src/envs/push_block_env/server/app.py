# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""
FastAPI application for the Push Block Environment.

This module creates an HTTP server that exposes the PushBlockEnvironment
over the OpenEnv HTTP and WebSocket endpoints, making it compatible with
PushBlockEnv.

The environment is a single mutable game shared by every request and
session, so the server must run with one worker process.

Usage:
    # Development (with auto-reload):
    uvicorn envs.push_block_env.server.app:app --reload --host 0.0.0.0 --port 8000

    # Or run directly:
    python -m envs.push_block_env.server.app

Environment variables:
    PUSH_BLOCK_LEVELS_DIR: Directory with levels.json (default: bundled levels)
    PUSH_BLOCK_LOG_DIR: Directory for the server log file (default: <repo>/logs)
    PUSH_BLOCK_LOG_LEVEL: Logging level name (default: INFO)
    PUSH_BLOCK_HOST / PUSH_BLOCK_PORT: Bind address for direct runs
"""

import logging
import os
from pathlib import Path

# Setup logging to file
log_dir = Path(os.getenv("PUSH_BLOCK_LOG_DIR", Path(__file__).resolve().parents[4] / "logs"))
os.makedirs(log_dir, exist_ok=True)
log_file = log_dir / "push_block_server.log"

logging.basicConfig(
    level=os.getenv("PUSH_BLOCK_LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_file),
        logging.StreamHandler()  # Keep logging to console as well
    ]
)
logger = logging.getLogger(__name__)

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from openenv.core.env_server import http_server
from openenv.core.env_server.route_config import GetEndpointConfig, register_get_endpoints
from pydantic import ValidationError

from ..models import LevelListResponse, LevelSummary, PushBlockAction, PushBlockObservation
from .levels import LevelCatalogue, UnknownLevel
from .push_block_environment import EpisodeNotStarted, PushBlockEnvironment


def _load_catalogue() -> LevelCatalogue:
    levels_dir = os.getenv("PUSH_BLOCK_LEVELS_DIR")
    if levels_dir:
        return LevelCatalogue.from_directory(levels_dir)
    return LevelCatalogue.default()


def create_app(env: PushBlockEnvironment) -> FastAPI:
    """
    Build the OpenEnv app around one environment instance.

    The OpenEnv server asks its factory for an environment on every HTTP
    request and WebSocket session; handing back the same instance keeps one
    game alive across calls.

    Args:
        env: Environment served by every endpoint

    Returns:
        FastAPI application with /reset, /step, /state, /levels, /health,
        /schema, /metadata and /ws
    """
    api = http_server.create_app(
        lambda: env, PushBlockAction, PushBlockObservation, env_name="push_block_env"
    )

    register_get_endpoints(
        api,
        [
            GetEndpointConfig(
                path="/levels",
                handler=lambda: LevelListResponse(
                    levels=[
                        LevelSummary(name=level.name, move_budget=level.move_budget)
                        for level in env.catalogue
                    ]
                ),
                response_model=LevelListResponse,
                tag="Environment Info",
                summary="List levels",
                description="Levels in play order, with the move budget of each.",
            )
        ],
    )

    @api.exception_handler(UnknownLevel)
    async def unknown_level(_request: Request, exc: UnknownLevel) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @api.exception_handler(EpisodeNotStarted)
    async def episode_not_started(_request: Request, exc: EpisodeNotStarted) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @api.exception_handler(ValidationError)
    async def invalid_options(_request: Request, exc: ValidationError) -> JSONResponse:
        logger.info(f"Rejected request: {exc.error_count()} validation error(s)")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            content={"detail": exc.errors(include_url=False, include_context=False, include_input=False)},
        )

    @api.on_event("startup")
    async def startup_event():
        logger.info("Push Block server starting up.")

    @api.on_event("shutdown")
    def shutdown_event():
        logger.info("Push Block server shutting down.")

    return api


# Create the environment instance
env = PushBlockEnvironment(_load_catalogue())

# Create the app
app = create_app(env)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("PUSH_BLOCK_HOST", "0.0.0.0"),
        port=int(os.getenv("PUSH_BLOCK_PORT", "8000")),
    )
