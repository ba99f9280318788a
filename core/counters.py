"""
Safety Counters
Safe/unsafe occurrence counts per syntactic category, and the report built from them.
"""

from dataclasses import dataclass, field, fields
from typing import Dict

CATEGORIES = ("functions", "exprs", "item_impls", "item_traits", "methods")


@dataclass(frozen=True)
class Count:
    """Occurrences of one category, split by whether they sit in an unsafe region."""

    safe: int = 0
    unsafe: int = 0

    def __post_init__(self):
        if self.safe < 0 or self.unsafe < 0:
            raise ValueError(f"Count values must be non-negative, got ({self.safe}, {self.unsafe})")

    def __add__(self, other: "Count") -> "Count":
        if not isinstance(other, Count):
            return NotImplemented
        return Count(self.safe + other.safe, self.unsafe + other.unsafe)

    def count(self, is_unsafe: bool) -> "Count":
        """Return a copy with one more occurrence on the matching side."""
        if is_unsafe:
            return Count(self.safe, self.unsafe + 1)
        return Count(self.safe + 1, self.unsafe)

    def to_dict(self) -> Dict[str, int]:
        return {"safe": self.safe, "unsafe": self.unsafe}


@dataclass(frozen=True)
class CounterBlock:
    """Five-category breakdown for one file or a whole scan."""

    functions: Count = field(default_factory=Count)
    exprs: Count = field(default_factory=Count)
    item_impls: Count = field(default_factory=Count)
    item_traits: Count = field(default_factory=Count)
    methods: Count = field(default_factory=Count)

    @classmethod
    def zero(cls) -> "CounterBlock":
        return cls()

    def __add__(self, other: "CounterBlock") -> "CounterBlock":
        if not isinstance(other, CounterBlock):
            return NotImplemented
        return CounterBlock(**{
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
        })

    def total(self) -> Count:
        result = Count()
        for name in CATEGORIES:
            result = result + getattr(self, name)
        return result


@dataclass(frozen=True)
class PerFileCounts:
    """Scanner output for a single source file."""

    counters: CounterBlock = field(default_factory=CounterBlock)
    forbids_unsafe: bool = False


@dataclass(frozen=True)
class Report:
    """
    Presentation view of a finished scan.
    Carries the five categories plus their synthesized total.
    """

    functions: Count
    exprs: Count
    item_impls: Count
    item_traits: Count
    methods: Count
    total: Count

    @classmethod
    def from_counters(cls, block: CounterBlock) -> "Report":
        return cls(
            functions=block.functions,
            exprs=block.exprs,
            item_impls=block.item_impls,
            item_traits=block.item_traits,
            methods=block.methods,
            total=block.total(),
        )

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        """JSON shape expected by existing consumers; key order is fixed."""
        return {name: getattr(self, name).to_dict() for name in CATEGORIES + ("total",)}
