from __future__ import annotations
from typing import Dict, Iterable, List, Union
from .cache import Cache, CacheStats
from .config import SimConfig
from .trace import AccessKind, TraceOp


class CacheHierarchy:
    """
    Owns a list of cache levels, top level first, and cascades each level into the next.
    The last level is backed by main memory.
    """
    def __init__(self, levels: List[Cache]):
        if not levels:
            raise ValueError("A cache hierarchy needs at least one level.")
        self.levels = list(levels)
        for upper, lower in zip(self.levels, self.levels[1:]):
            upper.cascade(lower)
        self.levels[-1].cascade(None)

    @classmethod
    def from_config(cls, config: SimConfig) -> CacheHierarchy:
        hierarchy = cls([Cache.from_config(level) for level in config.levels])
        hierarchy.set_verbose(config.verbose)
        return hierarchy

    @property
    def top(self) -> Cache:
        return self.levels[0]

    def __len__(self) -> int:
        return len(self.levels)

    def __iter__(self):
        return iter(self.levels)

    def __getitem__(self, key: Union[int, str]) -> Cache:
        if isinstance(key, int):
            return self.levels[key]
        for level in self.levels:
            if level.name == key:
                return level
        raise KeyError(f"No cache level named '{key}'")

    def set_verbose(self, verbose: bool):
        for level in self.levels:
            level.set_verbose(verbose)

    def read(self, address: int) -> bool:
        return self.top.read(address)

    def write(self, address: int) -> bool:
        return self.top.write(address)

    def run(self, trace: Iterable[TraceOp]) -> int:
        """Replays a trace against the top level in order. Returns the number of operations issued."""
        count = 0
        for op in trace:
            if op.kind == AccessKind.READ:
                self.top.read(op.address)
            else:
                self.top.write(op.address)
            count += 1
        return count

    def stats(self) -> Dict[str, CacheStats]:
        return {level.name: level.stats for level in self.levels}
