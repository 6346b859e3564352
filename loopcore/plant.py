"""
Idealized single-loop converter plant.

The power stage is reduced to a second-order R-L-C low-pass:

    H(s) = R / (L·C·s² + R·C·s + 1)

with natural frequency ω0 = 1/√(LC), damping ratio ζ = (R/2)·√(C/L)
and Q = 1/(2ζ).

A Plant is built once from the editor's component list. Selection is
"first encountered" per kind: a list holding two inductors contributes
only the first one. A plant missing any of the three elements is
incomplete; its transfer function is the zero phasor everywhere and it
cannot be used for margin searches.
"""

import math
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional, Tuple

from loopcore.components import PASSIVE_KINDS, Component, ComponentKind
from loopcore.errors import InvalidRangeError, MissingPlantElementError


class SecondOrderParams(NamedTuple):
    natural_frequency: float      # ω0 (rad/s)
    resonant_frequency_hz: float  # f0 = ω0 / 2π
    damping_ratio: float          # ζ
    quality_factor: float         # Q


@dataclass(frozen=True)
class Plant:
    """R, L, C in SI units. Any of them may be None for an incomplete plant."""
    resistance: Optional[float] = None
    inductance: Optional[float] = None
    capacitance: Optional[float] = None

    @classmethod
    def from_components(cls, components: Iterable[Component]) -> "Plant":
        """Pick the first resistor, inductor and capacitor in list order."""
        found = {}
        for comp in components:
            if comp.kind in PASSIVE_KINDS:
                found.setdefault(comp.kind, comp.si_value)

        return cls(
            resistance=found.get(ComponentKind.RESISTOR),
            inductance=found.get(ComponentKind.INDUCTOR),
            capacitance=found.get(ComponentKind.CAPACITOR),
        )

    @property
    def missing(self) -> Tuple[str, ...]:
        names = []
        if self.resistance is None:
            names.append(ComponentKind.RESISTOR.value)
        if self.inductance is None:
            names.append(ComponentKind.INDUCTOR.value)
        if self.capacitance is None:
            names.append(ComponentKind.CAPACITOR.value)
        return tuple(names)

    @property
    def is_complete(self) -> bool:
        return not self.missing

    def require_complete(self) -> "Plant":
        """Return self, or raise MissingPlantElementError naming what is absent."""
        if not self.is_complete:
            raise MissingPlantElementError(self.missing)
        return self

    def transfer_function(self, frequency: float) -> complex:
        """
        Evaluate H(jω) at `frequency` Hz.

        Returns 0j for an incomplete plant. Callers that need a real
        result should check is_complete (or call require_complete) first.
        """
        if not self.is_complete:
            return complex(0.0, 0.0)

        R, L, C = self.resistance, self.inductance, self.capacitance
        s = complex(0.0, 2 * math.pi * frequency)
        denominator = L * C * s * s + R * C * s + 1
        if denominator == 0:
            return complex(math.nan, math.nan)
        return R / denominator

    def second_order_params(self) -> SecondOrderParams:
        """Natural frequency, damping and Q of the R-L-C network."""
        self.require_complete()
        R, L, C = self.resistance, self.inductance, self.capacitance
        if L <= 0 or C <= 0:
            raise InvalidRangeError(f"Inductance and capacitance must be positive, got L={L}, C={C}")

        omega0 = 1.0 / math.sqrt(L * C)
        zeta = (R / 2.0) * math.sqrt(C / L)
        q = 1.0 / (2.0 * zeta) if zeta > 0 else math.inf

        return SecondOrderParams(
            natural_frequency=omega0,
            resonant_frequency_hz=omega0 / (2 * math.pi),
            damping_ratio=zeta,
            quality_factor=q,
        )


def transfer_function(plant: Plant, frequency: float) -> complex:
    """Plant transfer function H(jω) at `frequency` Hz."""
    return plant.transfer_function(frequency)
