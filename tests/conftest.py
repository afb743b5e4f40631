import pytest
from pyv_cache.cache import Cache


class RecordingLevel:
    """A stand-in next level that records the traffic forwarded to it."""
    def __init__(self):
        self.reads = []
        self.writes = []

    def read(self, address: int) -> bool:
        self.reads.append(address)
        return True

    def write(self, address: int) -> bool:
        self.writes.append(address)
        return True


@pytest.fixture
def lower():
    return RecordingLevel()


@pytest.fixture
def make_cache():
    """
    Small 16-bit cache factory: 64-byte capacity, 4-byte blocks.
    With 2 ways that is 8 sets, 3 index bits and 11 tag bits, so addresses 0x00, 0x20, 0x40, ...
    all land in set 0 with consecutive tags.
    """
    def _make(name="L1", ways=2, write_policy="write-back", evict_policy="lru", capacity_bits=6):
        return Cache(name, capacity_bits=capacity_bits, ways=ways, addr_bits=16, block_bits=2,
                     write_policy=write_policy, evict_policy=evict_policy)
    return _make
