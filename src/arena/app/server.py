from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pygame.math import Vector3

from ..config import AppConfig
from ..sim.core.world import Arena
from ..sim.systems.events import EventBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: AppConfig, max_queue: int = 256):
        self.config = config
        self.bus = EventBus()
        self.arena = Arena(config.arena, bus=self.bus)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max_queue)
        self._pending_events: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self.bus.subscribe_all(self._record_event)

    def _record_event(self, event_name: str, payload: Dict[str, Any]) -> None:
        self._pending_events.append({"event": event_name, **payload})

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True
        self.arena.resume()

    async def stop(self) -> None:
        self.running = False
        self.arena.pause()

    async def reset(self) -> None:
        async with self._lock:
            self.arena.restart()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def handle_command(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a command message; unknown types are reported back, never raised."""
        command = payload.get("type")
        async with self._lock:
            if command == "force":
                self.arena.apply_control_force(
                    Vector3(float(payload.get("x", 0.0)), 0.0, float(payload.get("z", 0.0)))
                )
                return {"ok": True}
            if command == "jump":
                return {"ok": self.arena.request_jump()}
            if command == "powerup":
                try:
                    effect = self.arena.grant_power_up(str(payload.get("kind", "")))
                except ValueError:
                    return {"ok": False, "error": f"unknown power-up {payload.get('kind')!r}"}
                return {"ok": effect is not None}
            if command == "spin":
                entry = self.arena.grant_random_power_up()
                if entry is None:
                    return {"ok": False, "cooldown": self.arena.spin_cooldown}
                return {"ok": True, "result": entry.kind.value, "name": entry.name}
        if command == "restart":
            await self.reset()
            return {"ok": True}
        logger.debug("Ignoring unknown command %r", command)
        return {"ok": False, "error": f"unknown command {command!r}"}

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.arena.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.arena.step(self.tick)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.arena.snapshot(self.tick)
        events = self._pending_events
        self._pending_events = []
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": asdict(snapshot),
            "events": events,
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            logger.info("Dropping disconnected client")
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Arena Simulation")
controller = SimulationController(AppConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    arena = controller.arena
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "status": arena.status.value,
            "score": arena.score,
            "population": len(arena.agents),
            "leaderboard": [asdict(entry) for entry in arena.leaderboard()],
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/command")
async def command(payload: dict) -> JSONResponse:
    return JSONResponse(await controller.handle_command(payload))


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if not isinstance(payload, dict):
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
                continue
            result = await controller.handle_command(payload)
            await websocket.send_text(json.dumps({"type": "command_result", **result}))
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
