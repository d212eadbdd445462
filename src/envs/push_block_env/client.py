# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Push Block Environment Client.

This module provides the client for connecting to a Push Block Environment
server. Episodes run over the OpenEnv WebSocket session; the level list is
read from the plain HTTP /levels endpoint.
"""

import asyncio
from typing import Any, Dict, List, Optional

import requests
from openenv.core.client_types import StepResult
from openenv.core.env_client import EnvClient

from .models import PushBlockAction, PushBlockObservation, PushBlockState


def _http_url(base_url: str) -> str:
    url = base_url.rstrip("/")
    if url.startswith("ws://"):
        return "http://" + url[len("ws://"):]
    if url.startswith("wss://"):
        return "https://" + url[len("wss://"):]
    return url


class PushBlockEnv(EnvClient[PushBlockAction, PushBlockObservation, PushBlockState]):
    """
    Client for the Push Block Environment.

    This client connects to a Push Block Environment server and provides
    methods to interact with it: reset(), step(), state() and levels().
    It is async; call sync() for a blocking wrapper.

    Example:
        >>> # Connect to a running server
        >>> with PushBlockEnv(base_url="http://localhost:8000").sync() as client:
        ...     result = client.reset()
        ...     print(f"Level: {result.observation.level_name}")
        ...     print(f"Moves: {result.observation.moves_remaining}")
        ...
        ...     # Make a move
        ...     result = client.step(PushBlockAction(direction="right"))
        ...     print(f"Blocks on target: {result.observation.blocks_on_target}")
        ...     print(f"Status: {result.observation.status}")
    """

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 10.0, **kwargs: Any):
        """
        Args:
            base_url: Server root URL (http:// or ws://)
            timeout: Seconds to wait for the connection and for each reply
            **kwargs: Passed through to EnvClient
        """
        super().__init__(base_url, connect_timeout_s=timeout, message_timeout_s=timeout, **kwargs)
        self.base_url = _http_url(base_url)
        self.timeout = timeout

    async def reset(self, level: Optional[str] = None, **kwargs: Any) -> StepResult[PushBlockObservation]:
        """
        Start a new episode on the server.

        Args:
            level: Level name to jump to; None lets the server pick the next
                level from how the previous episode ended

        Returns:
            StepResult with the initial observation

        Raises:
            RuntimeError: if the server rejects the request (e.g. unknown level)
        """
        if level is not None:
            kwargs["level"] = level
        return await super().reset(**kwargs)

    async def levels(self) -> List[Dict[str, Any]]:
        """Names and move budgets of the server's levels, in play order."""
        response = await asyncio.to_thread(
            requests.get, f"{self.base_url}/levels", timeout=self.timeout
        )
        response.raise_for_status()
        return response.json().get("levels", [])

    def _step_payload(self, action: PushBlockAction) -> Dict:
        """
        Convert PushBlockAction to JSON payload for step request.

        Args:
            action: PushBlockAction instance

        Returns:
            Dictionary representation suitable for JSON encoding
        """
        return {
            "direction": action.direction,
        }

    def _parse_result(self, payload: Dict) -> StepResult[PushBlockObservation]:
        """
        Parse server response into StepResult[PushBlockObservation].

        Args:
            payload: JSON response from server

        Returns:
            StepResult with PushBlockObservation
        """
        obs_data = payload.get("observation", {})
        observation = PushBlockObservation(
            board=obs_data.get("board", []),
            board_shape=obs_data.get("board_shape", []),
            level_name=obs_data.get("level_name", ""),
            blocks_total=obs_data.get("blocks_total", 0),
            blocks_on_target=obs_data.get("blocks_on_target", 0),
            player_position=obs_data.get("player_position", [0, 0]),
            moves_remaining=obs_data.get("moves_remaining", 0),
            status=obs_data.get("status", "in_progress"),
            facing=obs_data.get("facing", "down"),
            accepted=obs_data.get("accepted", True),
            reject_reason=obs_data.get("reject_reason"),
            pushed_block=obs_data.get("pushed_block"),
            block_position=obs_data.get("block_position"),
            done=payload.get("done", False),
            reward=payload.get("reward"),
        )

        return StepResult(
            observation=observation,
            reward=payload.get("reward"),
            done=payload.get("done", False),
        )

    def _parse_state(self, payload: Dict) -> PushBlockState:
        """
        Parse server response into PushBlockState.

        Args:
            payload: JSON response from the state request

        Returns:
            PushBlockState with episode and level bookkeeping
        """
        return PushBlockState(
            episode_id=payload.get("episode_id"),
            step_count=payload.get("step_count", 0),
            level_name=payload.get("level_name"),
            level_index=payload.get("level_index", 0),
            status=payload.get("status", "in_progress"),
            campaign_complete=payload.get("campaign_complete", False),
        )
