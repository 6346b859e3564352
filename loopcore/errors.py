"""
Typed errors raised by the analysis engine.

Structural problems (an incomplete plant, a bad frequency range, a
compensator parameter list of the wrong length) fail fast with one of
these. Numeric edge cases never raise: they come back as inf/NaN.
"""

from typing import Iterable


class LoopAnalysisError(ValueError):
    """Base class for all engine errors."""


class MissingPlantElementError(LoopAnalysisError):
    """The plant lacks a resistor, inductor, or capacitor."""

    def __init__(self, missing: Iterable[str]):
        self.missing = tuple(missing)
        super().__init__(
            f"Plant is not analyzable, missing: {', '.join(self.missing)}"
        )


class InvalidRangeError(LoopAnalysisError):
    """Non-positive frequency, inverted bounds, or too few sweep points."""


class ArityMismatchError(LoopAnalysisError):
    """Compensator parameter count disagrees with its type."""

    def __init__(self, compensator_type: str, expected: int, got: int):
        self.compensator_type = compensator_type
        self.expected = expected
        self.got = got
        super().__init__(
            f"{compensator_type} compensator takes {expected} parameter(s), got {got}"
        )
