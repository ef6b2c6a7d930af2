"""Configuration for the 3D boids flocking simulation."""

DOMAIN = {
    "lower": (-500.0, -500.0, -500.0),
    "upper": (500.0, 500.0, 500.0),
}

GRID = {
    "cell_size": (75.0, 75.0, 75.0),
    "capacity": 8,             # Ids stored per cell, extra inserts are dropped
    "bucketing": "ceil",       # "ceil" matches the tuned radii, "floor" is conventional
}

BOIDS = {
    "speed": 60.0,

    # Flocking behavior (hard cutoffs, no falloff)
    "separation_radius": 25.0,
    "alignment_radius": 50.0,
    "cohesion_radius": 50.0,

    "separation_strength": 4.0,
    "alignment_strength": 6.0,
    "cohesion_strength": 1.0,
}

POPULATION = {
    "max_count": 50_000,       # Backing arrays are sized for this
    "initial": 1_000,
    "step": 1_000,             # Growth per fast frame
    "frame_budget": 0.016,     # Seconds, ~60 FPS
}

SIMULATION = {
    "max_dt": 0.05,            # Cap dt to prevent jumps on lag
    "seed": None,
    "report_every": 60,        # Frames between progress lines
}
