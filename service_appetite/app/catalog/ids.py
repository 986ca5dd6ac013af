"""
Sequential identifier generation (``prefix-NNN``).
"""

from typing import Callable


class SequentialIdGenerator:
    """Generates ``{prefix}-{n:03d}`` identifiers.

    The next number is the current record count plus one, advanced past
    any identifier already taken.
    """

    def __init__(self, prefix: str, width: int = 3):
        self.prefix = prefix
        self.width = width

    def format(self, number: int) -> str:
        return f"{self.prefix}-{number:0{self.width}d}"

    def next_id(self, count: int, is_taken: Callable[[str], bool]) -> str:
        number = count + 1
        candidate = self.format(number)
        while is_taken(candidate):
            number += 1
            candidate = self.format(number)
        return candidate
