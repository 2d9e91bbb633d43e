import asyncio
import json

from arena.app.server import SimulationController
from arena.config import AppConfig


def test_snapshot_queue_ack_cleanup() -> None:
    controller = SimulationController(AppConfig())

    async def exercise() -> None:
        controller.tick = 1
        await controller._broadcast_snapshot()
        controller.tick = 2
        await controller._broadcast_snapshot()
        async with controller._queue_lock:
            queued_ticks = [item.tick for item in controller._snapshot_queue]
        assert queued_ticks == [1, 2]
        await controller.acknowledge(1)
        async with controller._queue_lock:
            remaining_ticks = [item.tick for item in controller._snapshot_queue]
        assert remaining_ticks == [2]

    asyncio.run(exercise())


def test_snapshot_payload_carries_events() -> None:
    controller = SimulationController(AppConfig())

    async def exercise() -> None:
        await controller.handle_command({"type": "powerup", "kind": "earth"})
        await controller._broadcast_snapshot()
        async with controller._queue_lock:
            payload = json.loads(controller._snapshot_queue[-1].payload)
        assert payload["type"] == "snapshot"
        assert payload["payload"]["status"] == "running"
        assert {"event": "power_up_granted", "agent_id": 0, "kind": "earth"} in payload["events"]
        assert payload["payload"]["metadata"]["half_width"] == 250.0

    asyncio.run(exercise())


def test_commands_are_applied_or_reported() -> None:
    controller = SimulationController(AppConfig())

    async def exercise() -> None:
        assert await controller.handle_command({"type": "force", "x": 1.0, "z": -1.0}) == {"ok": True}
        assert (await controller.handle_command({"type": "jump"}))["ok"] is True
        assert (await controller.handle_command({"type": "jump"}))["ok"] is False
        assert (await controller.handle_command({"type": "powerup", "kind": "speed"}))["ok"] is True
        bad_kind = await controller.handle_command({"type": "powerup", "kind": "laser"})
        assert bad_kind["ok"] is False and "laser" in bad_kind["error"]
        unknown = await controller.handle_command({"type": "teleport"})
        assert unknown["ok"] is False
        spin = await controller.handle_command({"type": "spin"})
        assert spin["ok"] is True and "result" in spin
        again = await controller.handle_command({"type": "spin"})
        assert again["ok"] is False and again["cooldown"] > 0.0
        assert await controller.handle_command({"type": "restart"}) == {"ok": True}
        assert controller.tick == 0
        assert controller.arena.score == 0

    asyncio.run(exercise())
