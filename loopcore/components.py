"""
Circuit components, unit handling and single-element impedance.

Component values are stored in the engineering unit the editor shows
(inductors in mH, capacitors in µF, ...). The unit label carries an SI
prefix which is applied once, through Component.si_value, before any
analysis touches the number.
"""

import math
from dataclasses import dataclass
from enum import Enum


class ComponentKind(str, Enum):
    RESISTOR = "resistor"
    CAPACITOR = "capacitor"
    INDUCTOR = "inductor"
    VOLTAGE_SOURCE = "voltage_source"
    CURRENT_SOURCE = "current_source"
    DIODE = "diode"
    MOSFET = "mosfet"
    BJT = "bjt"
    OPAMP = "opamp"


# Kinds that take part in the plant transfer function
PASSIVE_KINDS = (ComponentKind.RESISTOR, ComponentKind.INDUCTOR, ComponentKind.CAPACITOR)

# SI prefix table
_SI_PREFIXES = [
    (1e-15, 'f'),
    (1e-12, 'p'),
    (1e-9,  'n'),
    (1e-6,  'µ'),
    (1e-3,  'm'),
    (1e0,   ''),
    (1e3,   'k'),
    (1e6,   'M'),
    (1e9,   'G'),
]

_PREFIX_SCALE = {prefix: scale for scale, prefix in _SI_PREFIXES if prefix}
_PREFIX_SCALE['u'] = 1e-6  # ASCII spelling of micro
_PREFIX_SCALE['μ'] = 1e-6  # Greek mu, distinct code point from the micro sign

_BASE_UNITS = {'Ω', 'Ohm', 'ohm', 'R', 'H', 'F', 'V', 'A', 'W', 'Hz'}


def unit_scale(unit: str) -> float:
    """
    Return the SI multiplier implied by a unit label.

    Examples:
        unit_scale('mH') → 1e-3
        unit_scale('uF') → 1e-6
        unit_scale('kΩ') → 1e3
        unit_scale('Ω')  → 1.0
        unit_scale('')   → 1.0

    Labels that are not a known prefix + base unit are treated as SI.
    """
    unit = (unit or '').strip()
    if len(unit) < 2 or unit in _BASE_UNITS:
        return 1.0
    prefix, base = unit[0], unit[1:]
    if prefix in _PREFIX_SCALE and base in _BASE_UNITS:
        return _PREFIX_SCALE[prefix]
    return 1.0


def engineering_notation(value: float, unit: str = '', precision: int = 3) -> str:
    """
    Format a value in engineering notation with SI prefix.

    Examples:
        engineering_notation(1000, 'Ω')   → '1kΩ'
        engineering_notation(0.001, 'H')  → '1mH'
        engineering_notation(1e-6, 'F')   → '1µF'
        engineering_notation(4700, 'Hz')  → '4.7kHz'
    """
    if value == 0:
        return f"0{unit}"
    if not math.isfinite(value):
        return f"{value}{unit}"

    abs_value = abs(value)
    sign = '-' if value < 0 else ''

    for scale, prefix in reversed(_SI_PREFIXES):
        if abs_value >= scale * 0.9995:
            scaled = round(abs_value / scale, 9)
            if scaled == int(scaled):
                return f"{sign}{int(scaled)}{prefix}{unit}"
            return f"{sign}{scaled:.{precision}g}{prefix}{unit}"

    # Below femto
    return f"{value:.{precision}g}{unit}"


@dataclass(frozen=True)
class Component:
    """A schematic element as handed over by the editor."""
    kind: ComponentKind
    value: float
    unit: str = ''
    name: str = ''

    @property
    def si_value(self) -> float:
        """Value in base SI units (Ohms, Henries, Farads, ...)."""
        return self.value * unit_scale(self.unit)

    @property
    def display(self) -> str:
        """Value re-rendered in engineering notation, e.g. 1 'mH' → '1mH'."""
        base_unit = self.unit.strip()
        if unit_scale(base_unit) != 1.0:
            base_unit = base_unit[1:]
        return engineering_notation(self.si_value, base_unit)

    def __str__(self) -> str:
        return f"{self.name or self.kind.value}: {self.display}"


def impedance(component: Component, frequency: float) -> complex:
    """
    Impedance of a single ideal element at `frequency` Hz.

        resistor:  R
        capacitor: -j / (ωC)
        inductor:  jωL
        other:     0

    At ω = 0 the capacitor is an open circuit and its reactance comes
    back as -j·inf instead of raising.
    """
    omega = 2 * math.pi * frequency
    value = component.si_value

    if component.kind == ComponentKind.RESISTOR:
        return complex(value, 0.0)
    elif component.kind == ComponentKind.CAPACITOR:
        denominator = omega * value
        if denominator == 0:
            return complex(0.0, -math.inf)
        return complex(0.0, -1.0 / denominator)
    elif component.kind == ComponentKind.INDUCTOR:
        return complex(0.0, omega * value)
    else:
        return complex(0.0, 0.0)
