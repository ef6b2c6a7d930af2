"""Frame-time driven growth of the active population."""

from typing import Optional

from config import boids as config


class PopulationRamp:
    """
    Grows the number of animated boids while frames stay under budget.

    After every fast frame the active count rises by one step until it
    reaches the allocated maximum. It never shrinks.
    """

    def __init__(
        self,
        maximum: int,
        initial: Optional[int] = None,
        step: Optional[int] = None,
        frame_budget: Optional[float] = None
    ):
        self.maximum = int(maximum)
        self.step = int(step if step is not None else config.POPULATION["step"])
        self.frame_budget = float(frame_budget if frame_budget is not None else config.POPULATION["frame_budget"])
        initial = int(initial if initial is not None else config.POPULATION["initial"])
        self.active = max(0, min(initial, self.maximum))

    def observe(self, frame_time: float, running: bool = True) -> int:
        """Record how long the last frame took. Returns the active count for the next one."""
        if running and frame_time < self.frame_budget and self.active < self.maximum:
            self.active = min(self.active + self.step, self.maximum)
        return self.active

    @property
    def saturated(self) -> bool:
        return self.active >= self.maximum
