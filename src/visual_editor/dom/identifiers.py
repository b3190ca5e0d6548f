# src/visual_editor/dom/identifiers.py
import random
import string
from typing import Optional, Set

_ALPHABET = string.ascii_lowercase + string.digits


class IdentifierGenerator:
    """
    Produces '{tag}-{counter}-{random base36}' identifiers.

    Each HtmlParser owns exactly one generator, so the counter and the set
    of handed-out identifiers live as long as the parser and are never
    shared with another parser instance.
    """

    def __init__(self, suffix_length: int = 8, rng: Optional[random.Random] = None):
        self.suffix_length = suffix_length
        self.counter = 0
        self._rng = rng or random.Random()
        self._issued: Set[str] = set()

    def _suffix(self) -> str:
        return "".join(self._rng.choice(_ALPHABET) for _ in range(self.suffix_length))

    def next(self, tag_name: str, taken: Optional[Set[str]] = None) -> str:
        """Returns a fresh identifier that collides neither with earlier output nor with 'taken'."""
        taken = taken or set()
        while True:
            self.counter += 1
            identifier = f"{tag_name.lower()}-{self.counter}-{self._suffix()}"
            if identifier not in self._issued and identifier not in taken:
                self._issued.add(identifier)
                return identifier
