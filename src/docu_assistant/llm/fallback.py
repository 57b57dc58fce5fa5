"""Selection strategies for canned responses used when the model returns nothing."""

import random
from typing import Optional, Protocol, Sequence


class ResponseSelector(Protocol):
    def select(self, responses: Sequence[str]) -> str: ...


class RoundRobinSelector:
    """Cycles through the responses in order."""

    def __init__(self, start: int = 0):
        self._next = start

    def select(self, responses: Sequence[str]) -> str:
        if not responses:
            return ""
        choice = responses[self._next % len(responses)]
        self._next += 1
        return choice


class SeededRandomSelector:
    """Random choice from a private ``random.Random``; equal seeds give equal sequences."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def select(self, responses: Sequence[str]) -> str:
        if not responses:
            return ""
        return self._random.choice(list(responses))


def create_selector(seed: Optional[int] = None) -> ResponseSelector:
    return SeededRandomSelector(seed) if seed is not None else RoundRobinSelector()
