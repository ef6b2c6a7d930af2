"""Command line tools for running the boids simulation."""
