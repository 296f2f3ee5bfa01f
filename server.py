"""
Putt Web Server — FastAPI + WebSocket

Runs the hole clock and physics loop and streams ball state to browser
clients over WebSocket. Drawing and input devices live in the client.
"""

import asyncio
import json
import math
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from controller import PuttController
import physics as _phys

# ── Controller ──────────────────────────────────────────────────────────────

ctrl = PuttController()


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

clients: list[WebSocket] = []

# ── Physics params (attr, label, min, max, step) ────────────────────────────

# Bounds are shared with the controller's `params` command
_B = PuttController.PARAM_BOUNDS
PHYSICS_PARAMS = [
    ("DEFAULT_FRICTION", "Green Friction", *_B["DEFAULT_FRICTION"], 0.1),
    ("MAX_BOUNCES",      "Max Bounces",    *_B["MAX_BOUNCES"],      1),
    ("STOP_SPEED",       "Stop Speed",     *_B["STOP_SPEED"],       1e-4),
]

PARAM_DEFAULTS = {attr: getattr(_phys, attr) for attr, *_ in PHYSICS_PARAMS}

# ── Async game loop ─────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


async def game_loop():
    """Main loop running at ~60 fps."""
    last_time = time.perf_counter()

    while True:
        now = time.perf_counter()
        dt = now - last_time
        last_time = now

        # Clamp dt after stalls
        if dt > ctrl.MAX_FRAME_DT:
            dt = ctrl.MAX_FRAME_DT

        ctrl.step(dt)

        if clients:
            frame_msg = _build_frame_message()
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)

        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


def _build_frame_message() -> str:
    """Serialize current state into a JSON frame message."""
    events = list(ctrl.pending_events)
    ctrl.pending_events.clear()

    sounds = []
    for ev in ctrl.physics_events:
        sounds.append({
            "type": ev.get("type", ""),
            "kind": ev.get("kind", ""),
            "speed": round(float(ev.get("speed", 0.0)), 3),
        })

    frame = {
        "type": "frame",
        "ball": ctrl.get_state_dict(),
        "events": events,
        "sounds": sounds,
        "status": ctrl.status_msg,
    }
    return json.dumps(frame, separators=(',', ':'))


def _hole_summary(index: int) -> dict:
    hole = ctrl.course[index]
    return {
        "index": index,
        "name": hole.name,
        "tee": hole.tee.tolist(),
        "goal": hole.goal.tolist(),
        "goal_radius": hole.goal_radius,
        "obstacles": [
            {"type": type(ob).__name__,
             "contains_ball": ob.contains_ball,
             "vertices": [v.tolist() for v in ob.vertices_at(0.0)]}
            for ob in hole.obstacles
        ],
    }


# ── Physics params helpers ──────────────────────────────────────────────────

def _get_params_data() -> list:
    """Return all physics params with current values."""
    result = []
    for attr, label, mn, mx, step in PHYSICS_PARAMS:
        result.append({
            "attr": attr, "label": label,
            "value": getattr(_phys, attr),
            "min": mn, "max": mx, "step": step,
        })
    return result


def _set_param(index: int, value: float) -> float:
    attr, _, mn, mx, _ = PHYSICS_PARAMS[index]
    kind = type(PARAM_DEFAULTS[attr])
    new_val = kind(max(mn, min(mx, value)))
    setattr(_phys, attr, new_val)
    return new_val


# ── HTTP routes ─────────────────────────────────────────────────────────────

@app.get("/holes")
async def list_holes():
    return [_hole_summary(i) for i in range(len(ctrl.course))]


@app.get("/state")
async def get_state():
    return ctrl.get_state_dict()


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)

    await ws.send_text(json.dumps({
        "type": "init",
        "ball_radius": _phys.BALL_RADIUS,
        "frame_dt": FRAME_DT,
        "hole": _hole_summary(ctrl.hole_index),
    }))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue

            cmd = msg.get("cmd", "")
            if cmd == "hit":
                try:
                    ctrl.hit(msg.get("v", [0.0, 0.0]))
                except ValueError as exc:
                    print(f"[WS] hit rejected: {exc}")
                    ctrl.status_msg = str(exc)
            elif cmd == "load":
                try:
                    ctrl.load_hole(int(msg.get("hole", 0)))
                except ValueError as exc:
                    print(f"[WS] load rejected: {exc}")
                    ctrl.status_msg = str(exc)
                    continue
                await ws.send_text(json.dumps({
                    "type": "hole",
                    "data": _hole_summary(ctrl.hole_index),
                }))
            elif cmd == "reset":
                ctrl.reset()
            elif cmd == "execute":
                ctrl.execute_command(msg.get("text", ""))
            elif cmd == "get_state":
                await ws.send_text(json.dumps({
                    "type": "state_json",
                    "data": ctrl.get_state_json(),
                }))
            elif cmd == "get_params":
                await ws.send_text(json.dumps({
                    "type": "params",
                    "data": _get_params_data(),
                }))
            elif cmd == "set_param":
                try:
                    idx = int(msg.get("index", 0))
                    value = float(msg.get("value", 0.0))
                except (ValueError, TypeError) as exc:
                    print(f"[WS] set_param rejected: {exc}")
                    ctrl.status_msg = str(exc)
                    continue
                if 0 <= idx < len(PHYSICS_PARAMS) and math.isfinite(value):
                    new_val = _set_param(idx, value)
                    await ws.send_text(json.dumps({
                        "type": "param_update",
                        "index": idx,
                        "value": new_val,
                    }))
            elif cmd == "reset_params":
                for attr, dflt in PARAM_DEFAULTS.items():
                    setattr(_phys, attr, dflt)
                await ws.send_text(json.dumps({
                    "type": "params",
                    "data": _get_params_data(),
                }))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
