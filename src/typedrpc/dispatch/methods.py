"""The registered leaf methods and the default registry."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from typedrpc.dispatch.registry import Registry, RegistryBuilder
from typedrpc.errors import BusinessError, InvalidParamsError
from typedrpc.types import TypeTag


@dataclass(frozen=True, slots=True)
class AnagramOptions:
    """How ``validAnagram`` compares its inputs.

    The default compares exact code-point multisets: case and whitespace are
    significant.
    """

    case_sensitive: bool = True
    ignore_whitespace: bool = False

    def normalize(self, text: str) -> str:
        if self.ignore_whitespace:
            text = "".join(ch for ch in text if not ch.isspace())
        if not self.case_sensitive:
            text = text.casefold()
        return text


def floor(x: float) -> int:
    try:
        return math.floor(x)
    except (OverflowError, ValueError) as exc:
        msg = f"floor is undefined for {x!r}"
        raise BusinessError(msg) from exc


def _positive_root(n: int, x: int) -> float:
    try:
        approx = x ** (1.0 / n)
    except OverflowError as exc:
        msg = f"nroot overflow for n={n}, x={x}"
        raise BusinessError(msg) from exc
    nearest = round(approx)
    # Snap exact integer roots so nroot(3, 27) is 3.0 rather than 3.0000000000000004.
    if nearest**n == x:
        return float(nearest)
    return approx


def nroot(n: int, x: int) -> float:
    """Real root r with ``r ** n == x``; odd roots keep the sign of *x*."""
    if n == 0:
        raise InvalidParamsError(data="nroot: n must be non-zero")
    if x < 0 and n % 2 == 0:
        raise InvalidParamsError(data=f"nroot: no real root of even degree {n} for {x}")
    if x == 0 and n < 0:
        msg = f"nroot: root of degree {n} is undefined for zero"
        raise BusinessError(msg)
    root = _positive_root(abs(n), abs(x))
    if x < 0:
        root = -root
    if n < 0:
        root = 1.0 / root
    return root


def reverse(s: str) -> str:
    return s[::-1]


def make_valid_anagram(options: AnagramOptions) -> Callable[[str, str], bool]:
    def valid_anagram(a: str, b: str) -> bool:
        return Counter(options.normalize(a)) == Counter(options.normalize(b))

    return valid_anagram


def sort(arr: Sequence[str]) -> list[str]:
    return sorted(arr)


def build_default_registry(anagram: AnagramOptions | None = None) -> Registry:
    """Register the built-in methods and freeze the registry."""
    valid_anagram = make_valid_anagram(anagram or AnagramOptions())
    builder = RegistryBuilder()
    builder.register("floor", [TypeTag.DOUBLE], floor, returns=TypeTag.INT)
    builder.register("nroot", [TypeTag.INT, TypeTag.INT], nroot, returns=TypeTag.DOUBLE)
    builder.register("reverse", [TypeTag.STRING], reverse, returns=TypeTag.STRING)
    for name in ("validAnagram", "valid_anagram"):
        builder.register(
            name,
            [TypeTag.STRING, TypeTag.STRING],
            valid_anagram,
            returns=TypeTag.BOOL,
        )
    builder.register("sort", [TypeTag.STRING_ARRAY], sort, returns=TypeTag.STRING_ARRAY)
    return builder.build()


__all__ = [
    "AnagramOptions",
    "build_default_registry",
    "floor",
    "make_valid_anagram",
    "nroot",
    "reverse",
    "sort",
]
