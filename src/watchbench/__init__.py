"""
watchbench - Watch-mode latency benchmarks for build tools.

Touch a source file, wait for the build to notice, write down how long it took.
"""

from watchbench.sampler import LatencySampler
from watchbench.workspace import ScopedWorkspace

__version__ = "0.1.0"
__all__ = ["LatencySampler", "ScopedWorkspace", "__version__"]
