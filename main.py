"""
3D Boids Simulation
===================

A flocking simulation over a bounded uniform grid, run headless.

Usage:
    python main.py                   # Defaults from config/boids.py
    python main.py --frames 600      # See `python -m tools.bench --help`
"""

from tools.bench import main


if __name__ == "__main__":
    main()
