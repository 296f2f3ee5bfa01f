"""
PuttController — Layer 2 (Game Logic)

Owns the loaded hole, the ball state and the hole clock, and drives
PuttEngine. Talks to the outer layer (server.py / a renderer) via two queues:
  - pending_events  : rendering commands (load_hole, ball_holed, …)
  - physics_events  : wall/goal signals for sound playback

Outer layer calls:
  ctrl.step(dt)               — advance the clock and physics each frame
  ctrl.hit(velocity)          — strike the ball
  ctrl.execute_command(text)  — JSON command surface
"""

import json
import math
import numpy as np

from course import HolePreset
from physics import PuttEngine, BallState, Hole
import physics as _phys
from vecmath import vec, length


class PuttController:
    """Layer 2: hole state machine + physics orchestration."""

    # ── Class-level constants ─────────────────────────────────────────────────
    SIM_DT        = 1.0 / 120     # headless simulate_shot step
    MAX_FRAME_DT  = 0.1           # longest clock advance per frame
    MAX_SHOT_TIME = 60.0
    MAX_HIT_SPEED = 200.0
    TRAIL_MAX_POINTS = 200

    # Physics constants that `params` commands may change: name -> (min, max)
    PARAM_BOUNDS = {
        "DEFAULT_FRICTION": (0.0, 10.0),
        "MAX_BOUNCES":      (1, 128),
        "STOP_SPEED":       (0.0, 0.1),
    }

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, course: list | None = None):
        self.course: list[Hole] = course if course is not None else HolePreset.course()
        self.engine = PuttEngine()
        self._sim_engine = PuttEngine()   # reused for headless simulate_shot()

        self.hole_index = 0
        self.hole: Hole = self.course[0]
        self.clock = 0.0
        self.state: BallState = self.engine.initialize(self.hole, self.clock)
        self.mode = "idle"          # "idle"|"rolling"|"holed"

        self.trail: list = []
        self.status_msg = ""

        # Event queues
        self.pending_events: list[dict] = []   # outer-layer rendering commands
        self.physics_events: list[dict] = []   # collision / goal sounds

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def step(self, dt_frame: float) -> None:
        """Advance the hole clock by dt_frame and the ball with it."""
        self.physics_events.clear()
        if dt_frame <= 0:
            return
        # Stalls must not turn into one long tick
        dt_frame = min(dt_frame, self.MAX_FRAME_DT)
        self.clock += dt_frame

        if self.mode != "rolling":
            # Keep simulated time in step with the clock so a later hit starts now
            self.state = self.engine.step(self.hole, self.state, self.clock)
            return

        self.state = self.engine.step(self.hole, self.state, self.clock)
        self.physics_events.extend(self.engine.events)

        self.trail.append(self.state.position.tolist())
        if len(self.trail) > self.TRAIL_MAX_POINTS:
            del self.trail[0]

        if self.state.done:
            self.mode = "holed"
            self.status_msg = f"{self.hole.name}: holed in {self.state.shot_count}!"
            self.pending_events.append({
                "type": "ball_holed", "hole": self.hole_index,
                "shots": self.state.shot_count,
            })
            print(f"[PUTT] {self.status_msg}")
        elif self.engine.is_at_rest(self.hole, self.state):
            self.mode = "idle"
            self.status_msg = "Stopped. Take your next shot."

    # ──────────────────────────────────────────────────────────────────────────
    # Hole management
    # ──────────────────────────────────────────────────────────────────────────

    def load_hole(self, index: int) -> None:
        if not 0 <= index < len(self.course):
            raise ValueError(f"hole index {index} out of range (0..{len(self.course) - 1})")
        self.hole_index = index
        self.hole = self.course[index]
        self.reset()
        self.pending_events.append({"type": "load_hole", "hole": index,
                                    "name": self.hole.name})

    def reset(self) -> None:
        """Put the ball back on the tee of the current hole."""
        self.clock = 0.0
        self.state = self.engine.initialize(self.hole, self.clock)
        self.mode = "idle"
        self.trail = [self.state.position.tolist()]
        self.status_msg = f"{self.hole.name}: ready."

    def hit(self, velocity) -> None:
        """Strike the ball with the given velocity vector."""
        if self.state.done:
            self.status_msg = "Ball is already holed."
            return
        v = vec(velocity)
        if length(v) > self.MAX_HIT_SPEED:
            raise ValueError(f"hit speed {length(v):.1f} exceeds {self.MAX_HIT_SPEED}")
        self.state = self.engine.apply_hit(self.state, v)
        self.mode = "rolling"
        self.status_msg = "Rolling..."
        print(f"[PUTT] shot {self.state.shot_count} v=({v[0]:.2f},{v[1]:.2f})")

    # ──────────────────────────────────────────────────────────────────────────
    # State export / JSON commands
    # ──────────────────────────────────────────────────────────────────────────

    def get_state_dict(self) -> dict:
        s = self.state
        return {
            "hole": self.hole_index,
            "name": self.hole.name,
            "pos": [round(float(s.position[0]), 4), round(float(s.position[1]), 4)],
            "vel": [round(float(s.velocity[0]), 4), round(float(s.velocity[1]), 4)],
            "t": round(s.elapsed, 4),
            "shots": s.shot_count,
            "done": s.done,
            "mode": self.mode,
        }

    def get_state_json(self) -> str:
        """Return current ball state as compact single-line JSON."""
        return json.dumps(self.get_state_dict(), separators=(',', ':'))

    def execute_command(self, text: str) -> None:
        """Parse a JSON command string and dispatch to handlers."""
        if not text:
            print("[CMD] execute_command: empty text")
            return
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            print(f"[CMD] JSON parse error: {exc}")
            self.status_msg = f"JSON error: {exc}"
            return
        cmd = str(data.get("cmd", "")).lower().strip()
        print(f"[CMD] cmd={cmd}")
        try:
            if cmd == "hit":
                self.hit(data.get("v", [0.0, 0.0]))
            elif cmd == "load":
                self.load_hole(int(data.get("hole", 0)))
            elif cmd == "reset":
                self.reset()
            elif cmd == "params":
                self._cmd_params(data.get("params", {}))
            else:
                self.status_msg = f"Unknown cmd '{cmd}'. Use hit/load/reset/params."
        except (ValueError, TypeError, OverflowError) as exc:
            print(f"[CMD] {cmd} rejected: {exc}")
            self.status_msg = f"{cmd}: {exc}"

    def _cmd_params(self, params: dict) -> None:
        applied = {}
        for name, value in params.items():
            if name not in self.PARAM_BOUNDS:
                raise ValueError(f"'{name}' is not an editable parameter")
            lo, hi = self.PARAM_BOUNDS[name]
            value = type(getattr(_phys, name))(value)
            if not (math.isfinite(value) and lo <= value <= hi):
                raise ValueError(f"{name} must be within [{lo}, {hi}], got {value}")
            setattr(_phys, name, value)
            applied[name] = value
        self.status_msg = f"params: {applied}"
        print(f"[CMD] params {applied}")

    # ──────────────────────────────────────────────────────────────────────────
    # Headless simulation
    # ──────────────────────────────────────────────────────────────────────────

    def simulate_shot(self, velocity, *, hole_index: int | None = None,
                      from_state: BallState | None = None,
                      sim_dt: float | None = None,
                      max_t: float | None = None) -> dict:
        """Play one shot to completion without touching controller state.

        Args:
            velocity:    Hit velocity [vx, vy].
            hole_index:  Hole to play; defaults to the loaded hole.
            from_state:  Starting ball state; defaults to the tee of that hole.
            sim_dt:      Physics step (default SIM_DT).
            max_t:       Simulated-time cap (default MAX_SHOT_TIME).

        Returns:
            ``dict`` with ``holed``, ``sim_time``, ``wall_hits``, ``pos``,
            ``vel``, ``shots`` and the sampled ``path``.
        """
        hole = self.hole if hole_index is None else self.course[hole_index]
        dt = self.SIM_DT if sim_dt is None else sim_dt
        limit = self.MAX_SHOT_TIME if max_t is None else max_t

        engine = self._sim_engine
        state = from_state if from_state is not None else engine.initialize(hole, 0.0)
        state = engine.apply_hit(state, velocity)

        path = [state.position.tolist()]
        wall_hits = 0
        t = 0.0
        while t < limit:
            state = engine.step(hole, state, state.simulated_time + dt)
            t += dt
            wall_hits += sum(1 for ev in engine.events if ev["type"] == "wall")
            path.append(state.position.tolist())
            if state.done or engine.is_at_rest(hole, state):
                break

        return {
            "holed": state.done,
            "sim_time": t,
            "wall_hits": wall_hits,
            "pos": np.asarray(state.position).tolist(),
            "vel": np.asarray(state.velocity).tolist(),
            "shots": state.shot_count,
            "path": path,
        }
