from .cancel import CancellationToken
from .cycles import CycleDetector, iter_includes
from .frame import ExpansionFrame
from .walker import Location, TreeWalker

__all__ = [
    "CancellationToken",
    "CycleDetector",
    "ExpansionFrame",
    "Location",
    "TreeWalker",
    "iter_includes",
]
