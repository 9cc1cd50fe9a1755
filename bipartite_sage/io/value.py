from dataclasses import dataclass
from typing import Callable, Iterable, List, TypeVar

T = TypeVar("T")
V = TypeVar("V")


@dataclass(frozen=True)
class EdgeValue:
    src_node: int
    dst_node: int
    weight: float = 1.0

    @classmethod
    def parse(cls, line: str) -> "EdgeValue":
        """Parses "src dst [weight]" separated by spaces or tabs."""
        fields = line.split()
        if len(fields) not in (2, 3):
            raise ValueError(f"Expected 'src dst [weight]', got: {line!r}")
        weight = float(fields[2]) if len(fields) == 3 else 1.0
        return cls(int(fields[0]), int(fields[1]), weight)


@dataclass(frozen=True)
class NodeValue:
    node: int

    @classmethod
    def parse(cls, line: str) -> "NodeValue":
        fields = line.split()
        if not fields:
            raise ValueError("Empty node line")
        return cls(int(fields[0]))


def collect(values: Iterable[T], getter: Callable[[T], V]) -> List[V]:
    """Pulls one field out of every record, preserving order."""
    return [getter(value) for value in values]
