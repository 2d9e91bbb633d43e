from __future__ import annotations

from pygame.math import Vector3
from pytest import approx

from arena.config import SteeringConfig
from arena.rng import DeterministicRng
from arena.sim.core.agent import Agent, AgentState
from arena.sim.systems import steering


def _make_agent(agent_id: int, radius: float, x: float = 0.0, z: float = 0.0, controlled: bool = False) -> Agent:
    return Agent(
        id=agent_id,
        name=f"agent-{agent_id}",
        position=Vector3(x, 0.0, z),
        radius=radius,
        is_controlled=controlled,
    )


def test_nearest_threat_ignores_out_of_range_and_smaller_agents():
    me = _make_agent(0, 5.0)
    far_threat = _make_agent(1, 9.0, x=70.0)
    near_threat = _make_agent(2, 6.0, x=-30.0)
    nearer_threat = _make_agent(3, 20.0, z=20.0)
    prey = _make_agent(4, 2.0, x=3.0)
    agents = [me, far_threat, near_threat, nearer_threat, prey]

    assert steering.find_nearest_threat(me, agents, 60.0) is nearer_threat
    assert steering.find_nearest_threat(me, [me, far_threat, prey], 60.0) is None


def test_ideal_target_prefers_largest_eatable_in_range():
    me = _make_agent(0, 10.0)
    small_close = _make_agent(1, 2.0, x=5.0)
    big_far = _make_agent(2, 8.0, x=90.0)
    too_far = _make_agent(3, 9.0, x=150.0)
    too_big = _make_agent(4, 12.0, x=4.0)
    agents = [me, small_close, big_far, too_far, too_big]

    assert steering.find_ideal_target(me, agents, 100.0) is big_far


def test_ideal_target_breaks_near_ties_by_distance():
    me = _make_agent(0, 10.0)
    far = _make_agent(1, 6.0, x=50.0)
    close = _make_agent(2, 6.05, x=-20.0)
    also_close_but_second = _make_agent(3, 5.98, z=30.0)

    assert steering.find_ideal_target(me, [me, far, close, also_close_but_second], 100.0, 0.1) is close
    assert steering.find_ideal_target(me, [me, close, far], 100.0, 0.1) is close


def test_ideal_target_does_not_depend_on_agent_order():
    me = _make_agent(0, 10.0)
    small_near = _make_agent(1, 6.0, x=10.0)
    middle = _make_agent(2, 6.08, x=30.0)
    largest_far = _make_agent(3, 6.16, x=60.0)

    forward = steering.find_ideal_target(me, [me, small_near, middle, largest_far], 100.0, 0.1)
    backward = steering.find_ideal_target(me, [largest_far, middle, small_near, me], 100.0, 0.1)

    assert forward is middle
    assert backward is middle


def test_nearest_target_uses_distance_only():
    me = _make_agent(0, 10.0)
    big = _make_agent(1, 9.0, x=40.0)
    small = _make_agent(2, 1.0, x=10.0)

    assert steering.find_nearest_target(me, [me, big, small], 80.0) is small
    assert steering.find_nearest_target(me, [me, big], 30.0) is None


def test_flee_takes_priority_over_hunting():
    config = SteeringConfig()
    rng = DeterministicRng(1)
    me = _make_agent(0, 5.0)
    threat = _make_agent(1, 9.0, x=20.0)
    prey = _make_agent(2, 2.0, x=-10.0)

    decision = steering.decide(me, [me, threat, prey], config, rng)

    assert decision.state == AgentState.FLEE
    assert decision.target_id == threat.id
    assert decision.force.x == approx(-config.avoid_force)
    assert decision.force.z == approx(0.0)
    assert decision.force.y == 0.0


def test_hunt_steers_toward_target_with_seek_force():
    config = SteeringConfig()
    rng = DeterministicRng(1)
    me = _make_agent(0, 5.0)
    prey = _make_agent(1, 2.0, z=-30.0)

    decision = steering.decide(me, [me, prey], config, rng)

    assert decision.state == AgentState.SEEK
    assert decision.force.z == approx(-config.seek_force)
    assert decision.force.length() == approx(2.2)
    assert config.seek_force > config.avoid_force


def test_lonely_agent_wanders_or_idles():
    me = _make_agent(0, 5.0)
    rng = DeterministicRng(3)

    always = steering.decide(me, [me], SteeringConfig(wander_chance=1.0), rng)
    never = steering.decide(me, [me], SteeringConfig(wander_chance=0.0), rng)

    assert always.state == AgentState.WANDER
    assert abs(always.force.x) <= 0.5 and abs(always.force.z) <= 0.5
    assert always.force.y == 0.0
    assert never.state == AgentState.IDLE
    assert never.force.length() == 0.0


def test_controlled_agent_is_never_steered():
    player = _make_agent(0, 5.0, controlled=True)
    threat = _make_agent(1, 50.0, x=10.0)

    decision = steering.decide(player, [player, threat], SteeringConfig(), DeterministicRng(0))

    assert decision.state == AgentState.CONTROLLED
    assert decision.force.length() == 0.0


def test_danger_level_rises_with_closer_threats():
    me = _make_agent(0, 5.0)
    near = _make_agent(1, 10.0, x=6.0)
    far = _make_agent(2, 10.0, x=54.0)

    near_level = steering.danger_level(me, [me, near], 60.0)
    far_level = steering.danger_level(me, [me, far], 60.0)

    assert 0.0 < far_level < near_level <= 1.0
    assert steering.danger_level(me, [me], 60.0) == 0.0
