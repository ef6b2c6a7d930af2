"""
Headless Boids Runner
=====================

Drives the simulation the way the interactive viewer does, without drawing:
one update per frame, growing the active flock while frames stay under the
time budget, and printing frame statistics as it goes.

Usage:
    python -m tools.bench                          # Defaults from config/boids.py
    python -m tools.bench --frames 600             # Longer run
    python -m tools.bench --max-count 20k          # Smaller backing arrays
    python -m tools.bench --dt 0.016 --seed 1      # Fixed step, reproducible
    python -m tools.bench --no-ramp --initial 50k  # Hold population constant
"""

import time
import argparse
import numpy as np
from collections import deque
from typing import Optional

from config import boids as config
from boids import PopulationRamp, Simulation


def parse_count(value: str) -> int:
    """Parse counts like 50000, 50k or 1m."""
    text = value.strip().lower().replace("_", "").replace(",", "")
    multiplier = 1
    if text.endswith("k"):
        multiplier, text = 1_000, text[:-1]
    elif text.endswith("m"):
        multiplier, text = 1_000_000, text[:-1]
    try:
        count = int(float(text) * multiplier)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}")
    if count < 0:
        raise argparse.ArgumentTypeError(f"count must be non-negative: {value!r}")
    return count


class FrameStats:
    """Rolling frame-time statistics over the last `window` frames."""

    def __init__(self, window: int = 60):
        self.times = deque(maxlen=window)
        self.frames = 0
        self.total_time = 0.0
        self.dropped = 0
        self.peak_active = 0

    def record(self, frame_time: float, active: int, dropped: int = 0):
        self.times.append(frame_time)
        self.frames += 1
        self.total_time += frame_time
        self.dropped += dropped
        self.peak_active = max(self.peak_active, active)

    @property
    def mean_ms(self) -> float:
        if not self.times:
            return 0.0
        return 1000.0 * float(np.mean(self.times))

    @property
    def fps(self) -> float:
        mean = self.mean_ms
        return 1000.0 / mean if mean > 0 else 0.0


def run(
    sim: Simulation,
    ramp: PopulationRamp,
    frames: int,
    dt: Optional[float] = None,
    max_dt: Optional[float] = None,
    report_every: int = 0,
    grow: bool = True
) -> FrameStats:
    """
    Run `frames` updates and return the collected statistics.

    With dt None the measured duration of the previous frame is used,
    capped at max_dt.
    """
    max_dt = max_dt if max_dt is not None else config.SIMULATION["max_dt"]
    stats = FrameStats()
    step = dt if dt is not None else 1.0 / 60.0

    for frame in range(frames):
        active = ramp.active
        start = time.perf_counter()
        sim.update_boids(active, step)
        elapsed = time.perf_counter() - start

        stats.record(elapsed, active, sim.grid.dropped)
        ramp.observe(elapsed, running=grow)
        if dt is None:
            step = min(elapsed, max_dt)

        if report_every and (frame + 1) % report_every == 0:
            print(
                f"[Bench] Frame {frame + 1:>6} | {active / 1000:>6.1f}k boids | "
                f"{stats.fps:>6.1f} FPS | {stats.mean_ms:>6.2f} ms | dropped {sim.grid.dropped:,}"
            )

    return stats


def main(argv=None) -> FrameStats:
    parser = argparse.ArgumentParser(
        description="Headless boids benchmark",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--frames", "-f", type=int, default=300,
                        help="Number of frames to simulate (default: 300)")
    parser.add_argument("--max-count", "-n", type=parse_count, default=config.POPULATION["max_count"],
                        help="Allocated population, e.g. 50000 or 50k")
    parser.add_argument("--initial", type=parse_count, default=config.POPULATION["initial"],
                        help="Active boids on the first frame")
    parser.add_argument("--step", type=parse_count, default=config.POPULATION["step"],
                        help="Boids added after each frame under budget")
    parser.add_argument("--budget", type=float, default=config.POPULATION["frame_budget"],
                        help="Frame time budget in seconds (default: %(default)s)")
    parser.add_argument("--dt", type=float,
                        help="Fixed time step; default uses measured frame time")
    parser.add_argument("--seed", type=int, default=config.SIMULATION["seed"],
                        help="Random seed for the initial flock")
    parser.add_argument("--bucketing", choices=["ceil", "floor"], default=config.GRID["bucketing"],
                        help="Grid cell bucketing rule (default: %(default)s)")
    parser.add_argument("--no-ramp", action="store_true",
                        help="Keep the active count at --initial")
    parser.add_argument("--report-every", type=int, default=config.SIMULATION["report_every"],
                        help="Frames between progress lines, 0 to disable")
    args = parser.parse_args(argv)

    if args.max_count <= 0:
        parser.error("--max-count must be positive")
    if args.frames < 0:
        parser.error("--frames must be non-negative")

    sim = Simulation.from_config(
        {"max_count": args.max_count, "seed": args.seed, "bucketing": args.bucketing},
        verbose=True,
    )
    ramp = PopulationRamp(args.max_count, initial=args.initial, step=args.step, frame_budget=args.budget)

    print("[Bench] Compiling kernels...")
    sim.warmup()

    print(f"[Bench] Running {args.frames} frames, starting at {ramp.active:,} boids")
    start = time.time()
    stats = run(
        sim, ramp, args.frames,
        dt=args.dt,
        report_every=args.report_every,
        grow=not args.no_ramp,
    )

    print(f"[Bench] Done in {time.time() - start:.2f}s")
    print(f"[Bench] Peak population: {stats.peak_active:,} / {args.max_count:,}")
    print(f"[Bench] Recent frame time: {stats.mean_ms:.2f} ms ({stats.fps:.1f} FPS)")
    print(f"[Bench] Dropped grid inserts: {stats.dropped:,}")
    return stats


if __name__ == "__main__":
    main()
