from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

"""Discriminated outcome variants returned at every pipeline boundary."""

__all__ = [
    "FailureKind",
    "Success",
    "Failure",
    "Outcome",
]

T = TypeVar("T")


class FailureKind(Enum):
    STRUCTURAL = "structural"  # unreadable file, no headers/rows, sheet absent
    MAPPING = "mapping"  # required fields could not be mapped
    TRANSFORM = "transform"  # no usable rows after transformation
    VALIDATION = "validation"  # validation gate rejected the batch
    IO = "io"  # input file could not be read


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T
    warnings: list[str] = field(default_factory=list)

    ok = True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    details: list[str] = field(default_factory=list)
    context: Any = field(default=None, compare=False, repr=False)  # e.g. the rejecting ValidationReport

    ok = False


Outcome = Success[T] | Failure
