import pytest

from arena.config import ArenaConfig, load_config


def test_defaults_match_arena_tuning():
    config = ArenaConfig()
    assert config.half_width == 250.0
    assert config.agent.controlled_max_speed == 30.0
    assert config.agent.ai_damping == 0.95
    assert config.steering.seek_force == 2.2
    assert config.powerups.duration_seconds == 30.0
    assert config.spawn.radius_range == (1.0, 8.0)


def test_load_config_overrides_nested_sections():
    config = load_config(
        {
            "seed": 7,
            "half_width": 120.0,
            "agent": {"gravity": 200.0},
            "steering": {"wander_chance": 0.0},
            "spawn": {"radius_range": [2, 4], "initial_small_count": 3},
            "powerups": {"duration_seconds": 5.0, "catalog_weights": {"speed": 3}},
        }
    )
    assert config.seed == 7
    assert config.half_width == 120.0
    assert config.agent.gravity == 200.0
    assert config.agent.jump_velocity == 150.0
    assert config.steering.wander_chance == 0.0
    assert config.spawn.radius_range == (2.0, 4.0)
    assert config.spawn.initial_large_radius == (16.0, 25.0)
    assert config.spawn.initial_small_count == 3
    assert config.powerups.duration_seconds == 5.0
    assert config.powerups.catalog_weights["speed"] == 3.0
    assert config.powerups.catalog_weights["try_again"] == 1.0


def test_unknown_keys_are_rejected():
    with pytest.raises(TypeError):
        load_config({"agent": {"warp_drive": True}})


def test_from_yaml(tmp_path):
    path = tmp_path / "arena.yaml"
    path.write_text("seed: 11\nsteering:\n  threat_range: 45.0\n")
    config = ArenaConfig.from_yaml(path)
    assert config.seed == 11
    assert config.steering.threat_range == 45.0
    assert config.steering.target_range == 80.0


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert ArenaConfig.from_yaml(path) == ArenaConfig()
