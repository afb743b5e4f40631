from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import List
import yaml
from pathlib import Path
from .utils.logging import get_logger

logger = get_logger(__name__)


class ConfigError(ValueError):
    """Raised when a cache or simulation configuration is unusable."""


class _PolicyEnum(Enum):
    @classmethod
    def parse(cls, value):
        """Accepts a member, its name or its value in any case ("write-back", "LRU", ...)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls[key]
        except KeyError:
            choices = ", ".join(m.value for m in cls)
            raise ConfigError(f"Unknown {cls.__name__} '{value}' (expected one of: {choices})") from None


class WritePolicy(_PolicyEnum):
    WRITE_BACK = "write-back"
    WRITE_THROUGH = "write-through"


class EvictPolicy(_PolicyEnum):
    LRU = "lru"
    FIFO = "fifo"


def ceil_log2(x: int) -> int:
    """Number of bits needed to enumerate x distinct values."""
    return (x - 1).bit_length() if x > 1 else 0


@dataclass
class CacheConfig:
    """Geometry and policies of one cache level. Sizes are given in bits (log2 of bytes)."""
    name: str = "Cache"
    capacity_bits: int = 16
    ways: int = 2
    addr_bits: int = 32
    block_bits: int = 5
    write_policy: WritePolicy = WritePolicy.WRITE_BACK
    evict_policy: EvictPolicy = EvictPolicy.LRU

    # Derived properties
    index_bits: int = field(init=False)
    tag_bits: int = field(init=False)

    def __post_init__(self):
        self.write_policy = WritePolicy.parse(self.write_policy)
        self.evict_policy = EvictPolicy.parse(self.evict_policy)

        for key in ("capacity_bits", "ways", "addr_bits", "block_bits"):
            value = getattr(self, key)
            # bool is an int subclass
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigError(f"[{self.name}] {key} must be an integer, got {value!r}.")

        if not self.ways >= 1:
            raise ConfigError(f"[{self.name}] Associativity must be at least 1, got {self.ways}.")
        if not self.addr_bits > 0:
            raise ConfigError(f"[{self.name}] Address width must be positive.")
        if not self.capacity_bits > 0:
            raise ConfigError(f"[{self.name}] Capacity must be positive.")
        if self.block_bits < 0:
            raise ConfigError(f"[{self.name}] Block size bits must not be negative.")

        self.index_bits = self.capacity_bits - self.block_bits - ceil_log2(self.ways)
        if self.index_bits < 0:
            raise ConfigError(
                f"[{self.name}] Capacity of 2^{self.capacity_bits} bytes is too small for "
                f"{self.ways} ways of 2^{self.block_bits}-byte blocks.")

        self.tag_bits = self.addr_bits - self.index_bits - self.block_bits
        if self.tag_bits < 0:
            raise ConfigError(
                f"[{self.name}] Address width {self.addr_bits} cannot hold "
                f"{self.index_bits} index bits and {self.block_bits} block bits.")

    @property
    def num_sets(self) -> int:
        return 1 << self.index_bits

    @property
    def capacity_bytes(self) -> int:
        return 1 << self.capacity_bits

    @property
    def block_bytes(self) -> int:
        return 1 << self.block_bits

    @classmethod
    def from_dict(cls, data: dict) -> CacheConfig:
        """Builds a level from a YAML mapping, ignoring derived and unknown keys."""
        allowed = {f.name for f in fields(cls) if f.init}
        unknown = set(data) - allowed
        if unknown:
            logger.warning(f"Ignoring unknown cache level keys: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if k in allowed})

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "capacity_bits": self.capacity_bits,
            "ways": self.ways,
            "addr_bits": self.addr_bits,
            "block_bits": self.block_bits,
            "write_policy": self.write_policy.value,
            "evict_policy": self.evict_policy.value,
            "index_bits": self.index_bits,
            "tag_bits": self.tag_bits,
        }


def default_levels() -> List[CacheConfig]:
    return [
        CacheConfig(name="L1", capacity_bits=16, ways=2, addr_bits=32, block_bits=5),
        CacheConfig(name="L2", capacity_bits=20, ways=4, addr_bits=32, block_bits=5),
    ]


@dataclass
class SimConfig:
    """Cache hierarchy simulation configuration."""
    # Hierarchy, top level first
    levels: List[CacheConfig] = field(default_factory=default_levels)

    # Trace file; the built-in stream workload is used when empty
    trace: str = ""

    # Config file
    config_file: str = ""

    # Reporting
    report_dir: str = "out/default_run"
    verbose: bool = False

    # Stream workload params
    iterations: int = 16384
    stride: int = 4
    stream_bases: List[int] = field(default_factory=lambda: [0x110000, 0x120000, 0x130000])

    def __post_init__(self):
        self.levels = [lvl if isinstance(lvl, CacheConfig) else CacheConfig.from_dict(lvl)
                       for lvl in self.levels]
        if not self.levels:
            raise ConfigError("At least one cache level is required.")
        names = [lvl.name for lvl in self.levels]
        if len(set(names)) != len(names):
            raise ConfigError(f"Cache level names must be unique, got {names}.")
        if self.iterations < 0:
            raise ConfigError("Iteration count must not be negative.")

    def update_from_yaml(self, yaml_path: str):
        """Updates config fields from a YAML file."""
        with open(yaml_path, 'r') as f:
            yaml_config = yaml.safe_load(f) or {}
        for key, value in yaml_config.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                logger.warning(f"Ignoring unknown config key '{key}' in {yaml_path}")

        # Validates the new values and turns YAML level mappings into CacheConfig objects
        self.__post_init__()

    @classmethod
    def from_args(cls, args) -> SimConfig:
        """Factory method to create a SimConfig from parsed argparse arguments."""
        config = cls()

        # 1. Load from YAML config file if provided
        if getattr(args, 'config', None):
            config.config_file = args.config
            if Path(config.config_file).exists():
                config.update_from_yaml(config.config_file)
            else:
                logger.warning(f"Config file {config.config_file} not found.")

        # 2. Override with command-line arguments
        arg_dict = vars(args)
        for key, value in arg_dict.items():
            if key == 'config':
                continue
            if value is not None and hasattr(config, key):
                setattr(config, key, value)

        config.__post_init__()
        return config
