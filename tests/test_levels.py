import json

import pytest

from envs.push_block_env.models import EngineStatus
from envs.push_block_env.server.grid import InvalidCellCode, MalformedLevel
from envs.push_block_env.server.levels import (
    Level,
    LevelCatalogue,
    LevelProgression,
    UnknownLevel,
)

from conftest import write_catalogue


def test_default_catalogue_loads_bundled_levels_in_order(catalogue):
    assert catalogue.names == ["first_push", "two_blocks", "detour", "return_trip"]
    assert len(catalogue) == 4
    assert catalogue.get("detour").move_budget == 12
    assert catalogue.index_of("return_trip") == 3


@pytest.mark.parametrize("name", ["first_push", "two_blocks", "detour", "return_trip"])
def test_bundled_levels_are_solvable_within_budget(catalogue, solutions, name):
    level = catalogue.get(name)
    engine = level.build_engine()
    for direction in solutions[name]:
        outcome = engine.attempt_move(direction)
        assert outcome.accepted
    assert engine.status is EngineStatus.WON
    assert engine.moves_remaining == level.move_budget - len(solutions[name])


def test_unknown_level_raises_key_error(catalogue):
    with pytest.raises(UnknownLevel) as excinfo:
        catalogue.get("nope")
    assert isinstance(excinfo.value, KeyError)
    assert str(excinfo.value) == "Unknown level: nope"


def test_from_directory_reads_manifest(tmp_path):
    write_catalogue(tmp_path, [("a", "3,4,2", 3), ("b", "2,4,3", 4)])
    catalogue = LevelCatalogue.from_directory(tmp_path)
    assert catalogue.names == ["a", "b"]
    assert catalogue[1].move_budget == 4
    assert [level.name for level in catalogue] == ["a", "b"]


def test_from_directory_reports_the_bad_file(tmp_path):
    write_catalogue(tmp_path, [("good", "3,4,2", 3), ("ragged", "3,4,2\n1,1", 3)])
    with pytest.raises(MalformedLevel, match="01_ragged.txt"):
        LevelCatalogue.from_directory(tmp_path)


def test_from_directory_rejects_unknown_codes(tmp_path):
    write_catalogue(tmp_path, [("bad", "3,4,9", 3)])
    with pytest.raises(InvalidCellCode):
        LevelCatalogue.from_directory(tmp_path)


def test_from_directory_rejects_bad_manifest_entries(tmp_path):
    (tmp_path / "levels.json").write_text(json.dumps([{"name": "x"}]), encoding="utf-8")
    with pytest.raises(ValueError, match="Bad manifest entry"):
        LevelCatalogue.from_directory(tmp_path)


def test_from_directory_requires_manifest(tmp_path):
    with pytest.raises(FileNotFoundError):
        LevelCatalogue.from_directory(tmp_path)


def test_catalogue_rejects_duplicates_and_empty():
    level = Level(name="a", text="3,4,2", move_budget=3)
    with pytest.raises(ValueError):
        LevelCatalogue([level, level])
    with pytest.raises(ValueError):
        LevelCatalogue([])


def test_from_texts_validates_levels():
    catalogue = LevelCatalogue.from_texts({"one": "3,4,2"}, move_budget=2)
    assert catalogue.get("one").move_budget == 2
    with pytest.raises(MalformedLevel):
        LevelCatalogue.from_texts({"broken": ""}, move_budget=2)


def test_progression_advances_on_win_and_retries_on_loss():
    catalogue = LevelCatalogue.from_texts({"a": "3,4,2", "b": "3,4,2", "c": "3,4,2"}, move_budget=3)
    progression = LevelProgression(catalogue)
    assert progression.current.name == "a"

    assert progression.advance(EngineStatus.LOST).name == "a"
    assert progression.advance(EngineStatus.IN_PROGRESS).name == "a"
    assert progression.advance(EngineStatus.WON).name == "b"
    assert progression.advance(EngineStatus.WON).name == "c"
    assert not progression.campaign_complete

    assert progression.advance(EngineStatus.WON).name == "c"
    assert progression.campaign_complete


def test_progression_jump_clears_campaign_flag():
    catalogue = LevelCatalogue.from_texts({"a": "3,4,2"}, move_budget=3)
    progression = LevelProgression(catalogue)
    progression.advance(EngineStatus.WON)
    assert progression.campaign_complete
    assert progression.jump_to("a").name == "a"
    assert not progression.campaign_complete
