"""Per-frame driver calling update and render hooks on enabled modules."""

import logging

from .module_system import Hook

logger = logging.getLogger(__name__)

RENDER_HOOKS = (Hook.BEFORE_RENDER_EARLY, Hook.BEFORE_RENDER_LATE, Hook.ON_RENDER)


class FrameDriver:
    """
    Drives the per-frame hooks of a runtime.

    Only enabled modules are reached, since every phase goes through
    ``ModuleRuntime.broadcast``. Deferred loads are pumped at the start of
    each tick so module loads resolve between frames.
    """

    def __init__(self, runtime):
        self.runtime = runtime
        self.paused = False
        self.frames = 0

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def update(self):
        self.runtime.broadcast(Hook.ON_UPDATE)

    def render(self):
        for hook in RENDER_HOOKS:
            self.runtime.broadcast(hook)

    def tick(self) -> bool:
        """
        Run one frame.

        Returns:
            False if the driver is paused and nothing ran
        """
        self.runtime.pump()
        if self.paused:
            return False
        self.update()
        self.render()
        self.frames += 1
        return True
