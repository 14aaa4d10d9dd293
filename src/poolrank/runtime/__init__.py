from .pool import PoolRuntime, RuntimePaths
from .replay import ReplayAction, ReplayFixture, ReplayHarness

__all__ = ["PoolRuntime", "ReplayAction", "ReplayFixture", "ReplayHarness", "RuntimePaths"]
