"""Simulation configuration dictionaries."""
