from __future__ import annotations
from enum import Enum
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, Sequence


class AccessKind(Enum):
    READ = "R"
    WRITE = "W"


class TraceOp(NamedTuple):
    kind: AccessKind
    address: int


_KIND_ALIASES = {
    "R": AccessKind.READ,
    "READ": AccessKind.READ,
    "W": AccessKind.WRITE,
    "WRITE": AccessKind.WRITE,
}


def parse_trace_line(line: str) -> Optional[TraceOp]:
    """
    Parses one trace line of the form `<R|W|READ|WRITE> <address>`.
    The address is decimal or 0x-prefixed hex. Returns None for blank and comment lines.
    """
    text = line.split("#", 1)[0].strip()
    if not text:
        return None

    parts = text.split()
    if len(parts) != 2:
        raise ValueError(f"Malformed trace line: '{line.strip()}'")

    kind = _KIND_ALIASES.get(parts[0].upper())
    if kind is None:
        raise ValueError(f"Unknown access kind '{parts[0]}' in trace line: '{line.strip()}'")

    try:
        address = int(parts[1], 0)
    except ValueError as e:
        raise ValueError(f"Invalid address '{parts[1]}' in trace line: '{line.strip()}'") from e
    if address < 0:
        raise ValueError(f"Negative address in trace line: '{line.strip()}'")
    return TraceOp(kind, address)


def load_trace(path: str) -> List[TraceOp]:
    """Loads a trace file, skipping comments and blank lines."""
    ops = []
    with open(Path(path), 'r') as f:
        for lineno, line in enumerate(f, start=1):
            try:
                op = parse_trace_line(line)
            except ValueError as e:
                raise ValueError(f"{path}:{lineno}: {e}") from e
            if op is not None:
                ops.append(op)
    return ops


def stream_trace(iterations: int, stride: int, reads: Sequence[int], writes: Sequence[int] = ()) -> Iterator[TraceOp]:
    """
    Interleaved strided streams. Iteration i reads every base in `reads`, then writes
    every base in `writes`, each at offset i * stride.
    """
    for i in range(iterations):
        offset = i * stride
        for base in reads:
            yield TraceOp(AccessKind.READ, base + offset)
        for base in writes:
            yield TraceOp(AccessKind.WRITE, base + offset)
