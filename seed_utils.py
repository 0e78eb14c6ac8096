"""Utilities for creating reproducible RNG streams shared by the engine and the simulator."""
from __future__ import annotations

import random
from datetime import date
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

MAX_SEED_VALUE = 2**32 - 1
UINT32_MASK = 0xFFFFFFFF

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
MULBERRY_INCREMENT = 0x6D2B79F5

RandomSource = Callable[[], float]


def _imul(a: int, b: int) -> int:
    return (a * b) & UINT32_MASK


def hash_seed_string(seed: str) -> int:
    """Hash ``seed`` to an unsigned 32-bit integer with FNV-1a.

    Characters are folded as UTF-16 code units so that a seed string maps to the
    same integer no matter which runtime produced it.
    """

    value = FNV_OFFSET_BASIS
    data = seed.encode("utf-16-le")
    for index in range(0, len(data), 2):
        value ^= data[index] | (data[index + 1] << 8)
        value = _imul(value, FNV_PRIME)
    return value & UINT32_MASK


class Mulberry32:
    """Small 32-bit PRNG with bit-identical output across platforms."""

    def __init__(self, seed: int) -> None:
        self._state = int(seed) & UINT32_MASK
        self.counter = 0

    def random(self) -> float:
        self._state = (self._state + MULBERRY_INCREMENT) & UINT32_MASK
        self.counter += 1
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & UINT32_MASK
        return ((t ^ (t >> 14)) & UINT32_MASK) / 4294967296

    __call__ = random

    def __repr__(self) -> str:
        return f"Mulberry32(state={self._state}, counter={self.counter})"


def make_generator(seed: int) -> RandomSource:
    """Return a zero-argument callable producing floats in ``[0, 1)``."""

    return Mulberry32(seed).random


def generator_for_seed(seed: str) -> Mulberry32:
    return Mulberry32(hash_seed_string(seed))


def choose(items: Sequence[T], rng: RandomSource) -> T:
    if not items:
        raise ValueError("Cannot choose from an empty sequence")
    return items[int(rng() * len(items))]


def shuffle(items: Sequence[T], rng: RandomSource) -> List[T]:
    """Return a Fisher-Yates shuffled copy of ``items``."""

    shuffled = list(items)
    for index in range(len(shuffled) - 1, 0, -1):
        swap = int(rng() * (index + 1))
        shuffled[index], shuffled[swap] = shuffled[swap], shuffled[index]
    return shuffled


def daily_seed_string(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"daily-{today.year:04d}-{today.month:02d}-{today.day:02d}"


def salted_seed(base: str, attempt: int) -> str:
    if attempt <= 0:
        return base
    return f"{base}#{attempt}"


def resolve_seed(
    seed: Optional[str], daily: bool = False, today: Optional[date] = None
) -> str:
    """Return the seed string a game should be generated from.

    Daily games always use the date-based seed. When ``seed`` is ``None`` a
    fresh value is drawn from ``SystemRandom`` so it is unpredictable yet can be
    recorded and fed back later to recreate the same puzzle.
    """

    if daily:
        return daily_seed_string(today)
    if seed is None:
        return str(random.SystemRandom().randint(0, MAX_SEED_VALUE))
    return str(seed)
