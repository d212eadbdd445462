import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from envs.push_block_env.models import PushBlockAction
from envs.push_block_env.server.engine import PuzzleEngine
from envs.push_block_env.server.levels import LevelCatalogue, UnknownLevel
from envs.push_block_env.server.push_block_environment import EpisodeNotStarted, PushBlockEnvironment


def _play(env, moves):
    obs = None
    for direction in moves:
        obs = env.step(PushBlockAction(direction=direction))
    return obs


def test_reset_starts_on_first_level(env):
    obs = env.reset()
    assert obs.level_name == "first_push"
    assert obs.board_shape == [3, 6]
    assert len(obs.board) == 18
    assert obs.player_position == [2, 1]
    assert obs.blocks_total == 1
    assert obs.blocks_on_target == 0
    assert obs.moves_remaining == 5
    assert obs.status == "in_progress"
    assert obs.facing == "down"
    assert not obs.done

    state = env.state
    assert state.episode_id is not None
    assert state.step_count == 0
    assert state.level_name == "first_push"
    assert state.level_index == 0


def test_step_before_reset_raises(env):
    with pytest.raises(EpisodeNotStarted):
        env.step(PushBlockAction(direction="up"))


def test_step_reports_push_and_win(env):
    env.reset()
    obs = env.step(PushBlockAction(direction="right"))
    assert obs.accepted
    assert obs.pushed_block == "block1"
    assert obs.block_position == [4, 1]
    assert obs.blocks_on_target == 1
    assert obs.status == "won"
    assert obs.done
    assert obs.facing == "right"
    assert env.state.status == "won"
    assert env.state.step_count == 1


def test_rejected_step_counts_as_step_but_not_move(env):
    env.reset()
    obs = _play(env, ["up", "up"])
    assert not obs.accepted
    assert obs.reject_reason == "out_of_bounds"
    assert obs.player_position == [2, 0]
    assert obs.moves_remaining == 4
    assert env.state.step_count == 2


def test_reset_after_win_advances_level(env):
    env.reset()
    _play(env, ["right"])
    first_episode = env.state.episode_id

    obs = env.reset()
    assert obs.level_name == "two_blocks"
    assert env.state.level_index == 1
    assert env.state.episode_id != first_episode


def test_reset_after_loss_retries_level():
    catalogue = LevelCatalogue.from_texts({"tight": "3,1,4,2", "next": "3,4,2"}, move_budget=1)
    env = PushBlockEnvironment(catalogue)
    env.reset()
    obs = _play(env, ["right"])
    assert obs.status == "lost"
    assert obs.done

    assert env.reset().level_name == "tight"


def test_reset_mid_level_replays_it(env):
    env.reset(level="detour")
    _play(env, ["down"])
    obs = env.reset()
    assert obs.level_name == "detour"
    assert obs.moves_remaining == 12


def test_reset_with_level_name_jumps(env):
    obs = env.reset(level="return_trip")
    assert obs.level_name == "return_trip"
    assert obs.player_position == [1, 1]
    assert env.state.level_index == 3


def test_reset_with_unknown_level_raises(env):
    with pytest.raises(UnknownLevel):
        env.reset(level="missing")


def test_full_campaign(env, solutions):
    obs = env.reset()
    for name in env.catalogue.names:
        assert obs.level_name == name
        obs = _play(env, solutions[name])
        assert obs.status == "won"
        obs = env.reset()
    assert env.state.campaign_complete
    assert obs.metadata["campaign_complete"]
    assert obs.level_name == "return_trip"


def test_reset_with_non_string_level_is_rejected(env):
    with pytest.raises(ValidationError):
        env.reset(level=["detour"])
    assert env.engine is None


def test_reset_keeps_a_given_episode_id(env):
    env.reset(episode_id="episode-7")
    assert env.state.episode_id == "episode-7"


def test_state_is_a_snapshot(env):
    env.reset()
    snapshot = env.state
    env.step(PushBlockAction(direction="up"))
    assert snapshot.step_count == 0
    assert env.state.step_count == 1


def test_concurrent_steps_are_applied_one_at_a_time(monkeypatch):
    catalogue = LevelCatalogue.from_texts({"corridor": "3" + ",1" * 9}, move_budget=20)
    env = PushBlockEnvironment(catalogue)
    env.reset()

    guard = threading.Lock()
    inside = []
    overlaps = []
    attempt_move = PuzzleEngine.attempt_move

    def tracked(self, direction):
        with guard:
            inside.append(direction)
            if len(inside) > 1:
                overlaps.append(len(inside))
        time.sleep(0.01)
        try:
            return attempt_move(self, direction)
        finally:
            with guard:
                inside.pop()

    monkeypatch.setattr(PuzzleEngine, "attempt_move", tracked)

    with ThreadPoolExecutor(max_workers=8) as pool:
        observations = list(pool.map(lambda _: env.step(PushBlockAction(direction="right")), range(8)))

    assert overlaps == []
    assert sorted(obs.moves_remaining for obs in observations) == list(range(12, 20))
    assert env.state.step_count == 8
    assert env.engine.player_position == (8, 0)


def test_action_direction_is_normalised_and_checked():
    assert PushBlockAction(direction=" Up ").direction == "up"
    with pytest.raises(ValidationError):
        PushBlockAction(direction="diagonal")
