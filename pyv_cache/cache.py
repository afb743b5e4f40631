from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Tuple
from .config import CacheConfig, EvictPolicy, WritePolicy
from .utils.logging import get_logger


class CacheInvariantError(RuntimeError):
    """Internal cache bookkeeping reached a state valid input can never produce."""


@dataclass
class FrameEntry:
    """One cached block. Only presence, recency and dirtiness are modelled, never data."""
    tag: int
    address: int
    last_access: int
    dirty: bool = False


class AssociativeSet:
    """The blocks sharing one index, kept in insertion order."""
    def __init__(self, ways: int):
        self.ways = ways
        # Insertion order is the FIFO order: the first item is the oldest block.
        self.entries: "OrderedDict[int, FrameEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries.values())

    def is_full(self) -> bool:
        return len(self.entries) >= self.ways

    def find(self, tag: int) -> Optional[FrameEntry]:
        return self.entries.get(tag)

    def insert(self, entry: FrameEntry):
        if self.is_full():
            raise CacheInvariantError(f"Set already holds {self.ways} blocks, cannot insert tag {entry.tag:#x}.")
        self.entries[entry.tag] = entry

    def remove(self, tag: int) -> FrameEntry:
        return self.entries.pop(tag)


@dataclass
class CacheStats:
    """Hit/miss counters of a single cache level."""
    hits: int = 0
    read_hits: int = 0
    write_hits: int = 0
    misses: int = 0
    read_misses: int = 0
    write_misses: int = 0

    @property
    def accesses(self) -> int:
        return self.hits + self.misses

    @property
    def reads(self) -> int:
        return self.read_hits + self.read_misses

    @property
    def writes(self) -> int:
        return self.write_hits + self.write_misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.accesses if self.accesses else 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data.update(accesses=self.accesses, reads=self.reads, writes=self.writes, hit_rate=self.hit_rate)
        return data


class Cache:
    """
    A set-associative cache level that tracks which blocks are resident but not their values.

    Levels are chained with `cascade()`: read misses fetch from the next level, write-through
    writes and write-back evictions of dirty blocks are forwarded to it. Without a next level
    the traffic goes to main memory, which is not modelled.

    The cascade chain must be acyclic. A cycle recurses without bound on the first miss.
    """
    def __init__(
        self,
        name: str,
        capacity_bits: int,
        ways: int,
        addr_bits: int,
        block_bits: int,
        write_policy: WritePolicy | str = WritePolicy.WRITE_BACK,
        evict_policy: EvictPolicy | str = EvictPolicy.LRU,
    ):
        # CacheConfig validates the geometry and raises ConfigError before any state exists
        self.config = CacheConfig(
            name=name,
            capacity_bits=capacity_bits,
            ways=ways,
            addr_bits=addr_bits,
            block_bits=block_bits,
            write_policy=write_policy,
            evict_policy=evict_policy,
        )
        self.name = name
        self.ways = ways
        self.block_bits = self.config.block_bits
        self.index_bits = self.config.index_bits
        self.tag_bits = self.config.tag_bits
        self.write_policy = self.config.write_policy
        self.evict_policy = self.config.evict_policy

        # Calculate masks for address decomposition
        self.index_mask = ((1 << self.index_bits) - 1) << self.block_bits
        self.tag_shift = self.index_bits + self.block_bits
        self.tag_mask = ((1 << self.tag_bits) - 1) << self.tag_shift

        self.sets: Dict[int, AssociativeSet] = {}
        self.next_level: Optional[Cache] = None
        self._stats = CacheStats()
        # Starts at 1 so that every serviced access gets a positive timestamp
        self._clock = 1

        self.verbose = False
        self.logger = get_logger(f"pyv-cache.{name}")
        self._addr_fmt = f"#0{((self.config.addr_bits - 1) >> 2) + 3}x"
        self._tag_fmt = f"#0{max(self.tag_bits - 1, 0) // 4 + 3}x"
        self._index_fmt = f"#0{max(self.index_bits - 1, 0) // 4 + 3}x"

    @classmethod
    def from_config(cls, config: CacheConfig) -> Cache:
        return cls(config.name, config.capacity_bits, config.ways, config.addr_bits,
                   config.block_bits, config.write_policy, config.evict_policy)

    def __repr__(self):
        return (f"Cache({self.name!r}, sets={self.config.num_sets}, ways={self.ways}, "
                f"{self.write_policy.value}, {self.evict_policy.value})")

    def set_verbose(self, verbose: bool):
        """Enables per-access tracing through the logger. Tracing never touches cache state."""
        self.verbose = verbose

    def cascade(self, next_level: Optional[Cache]):
        """Sets the level consulted on misses and write propagation; None means main memory."""
        self.next_level = next_level

    # --- Address decomposition ---

    def tag_of(self, address: int) -> int:
        return (address & self.tag_mask) >> self.tag_shift

    def index_of(self, address: int) -> int:
        return (address & self.index_mask) >> self.block_bits

    def decompose(self, address: int) -> Tuple[int, int]:
        """Splits an address into (tag, index). Bits above the address width are ignored."""
        return self.tag_of(address), self.index_of(address)

    # --- Accesses ---

    def read(self, address: int) -> bool:
        """Simulates a read of `address`. Returns True on a hit."""
        tag, index = self.decompose(address)
        cache_set = self.sets.get(index)
        entry = cache_set.find(tag) if cache_set is not None else None
        self._trace("read", address, tag, index, entry is not None)

        if entry is not None:
            self._stats.hits += 1
            self._stats.read_hits += 1
            entry.last_access = self._tick()
            return True

        self._stats.misses += 1
        self._stats.read_misses += 1

        # A read miss always fetches the block from below, whatever the write policy
        self._read_next_level(address)
        self._allocate(index, tag, address)
        return False

    def write(self, address: int) -> bool:
        """Simulates a write to `address`. Returns True on a hit."""
        tag, index = self.decompose(address)
        cache_set = self.sets.get(index)
        entry = cache_set.find(tag) if cache_set is not None else None
        hit = entry is not None
        self._trace("write", address, tag, index, hit)

        if hit:
            self._stats.hits += 1
            self._stats.write_hits += 1
            entry.last_access = self._tick()
        else:
            self._stats.misses += 1
            self._stats.write_misses += 1
            # Write misses install the block directly, nothing is fetched from below
            entry = self._allocate(index, tag, address)

        entry.dirty = True

        if self.write_policy == WritePolicy.WRITE_THROUGH:
            if self.verbose:
                self.logger.info(f"[{self.name}] (write through {address:{self._addr_fmt}})")
            self._write_next_level(address)
        return hit

    def _allocate(self, index: int, tag: int, address: int) -> FrameEntry:
        cache_set = self.sets.get(index)
        if cache_set is None:
            cache_set = self.sets[index] = AssociativeSet(self.ways)
        if cache_set.is_full():
            self._evict_victim(cache_set)
        entry = FrameEntry(tag=tag, address=address, last_access=self._tick())
        cache_set.insert(entry)
        return entry

    def _evict_victim(self, cache_set: AssociativeSet):
        """Removes one block from a full set following the eviction policy."""
        victim: Optional[FrameEntry] = None

        if self.evict_policy == EvictPolicy.LRU:
            for entry in cache_set:
                if victim is None or entry.last_access < victim.last_access:
                    victim = entry
        elif self.evict_policy == EvictPolicy.FIFO:
            victim = next(iter(cache_set), None)

        if victim is None:
            raise CacheInvariantError(f"[{self.name}] Eviction requested on an empty set.")

        cache_set.remove(victim.tag)
        if self.verbose:
            self.logger.info(f"[{self.name}] (evict {victim.address:{self._addr_fmt}}, "
                             f"tag {victim.tag:{self._tag_fmt}}{', dirty' if victim.dirty else ''})")

        # Write-through already propagated every write, only write-back owes the next level
        if self.write_policy == WritePolicy.WRITE_BACK and victim.dirty:
            if self.verbose:
                self.logger.info(f"[{self.name}] (write back dirty {victim.address:{self._addr_fmt}})")
            self._write_next_level(victim.address)

    def _read_next_level(self, address: int):
        if self.next_level is not None:
            self.next_level.read(address)

    def _write_next_level(self, address: int):
        if self.next_level is not None:
            self.next_level.write(address)

    def _tick(self) -> int:
        """Logical clock used as the LRU recency key. Advances once per serviced access."""
        now = self._clock
        self._clock += 1
        return now

    def _trace(self, op: str, address: int, tag: int, index: int, hit: bool):
        if not self.verbose:
            return
        self.logger.info(
            f"[{self.name}] {op} {address:{self._addr_fmt}}, index {index:{self._index_fmt}}, "
            f"tag {tag:{self._tag_fmt}}, {'HIT' if hit else 'MISS'}")

    # --- Inspection ---

    def contains(self, address: int) -> bool:
        """Whether the block holding `address` is resident. Does not count as an access."""
        tag, index = self.decompose(address)
        cache_set = self.sets.get(index)
        return cache_set is not None and cache_set.find(tag) is not None

    def is_dirty(self, address: int) -> bool:
        tag, index = self.decompose(address)
        cache_set = self.sets.get(index)
        entry = cache_set.find(tag) if cache_set is not None else None
        return entry is not None and entry.dirty

    def occupancy(self, index: int) -> int:
        cache_set = self.sets.get(index)
        return len(cache_set) if cache_set is not None else 0

    def resident_tags(self, index: int) -> List[int]:
        """Tags resident at `index`, oldest insertion first."""
        cache_set = self.sets.get(index)
        return [entry.tag for entry in cache_set] if cache_set is not None else []

    # --- Statistics ---

    @property
    def stats(self) -> CacheStats:
        """A snapshot of the counters."""
        return CacheStats(**asdict(self._stats))

    @property
    def hit_count(self) -> int:
        return self._stats.hits

    @property
    def read_hit_count(self) -> int:
        return self._stats.read_hits

    @property
    def write_hit_count(self) -> int:
        return self._stats.write_hits

    @property
    def miss_count(self) -> int:
        return self._stats.misses

    @property
    def read_miss_count(self) -> int:
        return self._stats.read_misses

    @property
    def write_miss_count(self) -> int:
        return self._stats.write_misses
