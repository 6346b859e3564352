"""
Feedback compensator synthesis and verification.

Compensator transfer functions (s = jω):

    Type 1 (integrator):  Gc(s) = Ki / s
    Type 2 (PI):          Gc(s) = Kp + Ki / s
    Type 3 (PID):         Gc(s) = Kp + Ki / s + Kd·s

Design normalizes the compensator gain so the open loop is 0 dB at the
target crossover, then places zeros and poles at fixed ratios of the
crossover (decade rule). The required phase boost is computed and
reported, but it does not move the zeros or poles.

Verification runs the same bisection searches used for the bare plant,
over the compensated open loop Gc·H instead.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from loopcore.analysis import (
    MarginResult,
    SweepPoint,
    frequency_sweep,
    gain_db,
    measure_margins,
    phase_degrees,
    search_crossover,
)
from loopcore.errors import ArityMismatchError, InvalidRangeError
from loopcore.plant import Plant
from loopcore.settings import AnalysisSettings, DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

# Safety margin added to the phase-boost requirement (degrees)
TYPE2_PHASE_SAFETY_DEG = 5.0
TYPE3_PHASE_SAFETY_DEG = 10.0

# Fixed placement ratios relative to the target crossover
TYPE2_ZERO_DIVISOR = 10.0
TYPE3_ZERO_DIVISORS = (10.0, 5.0)
TYPE3_POLE_MULTIPLIERS = (5.0, 10.0)

CLOSED_LOOP_BANDWIDTH_DB = -3.0


class CompensatorType(str, Enum):
    TYPE1 = "type1"  # integrator
    TYPE2 = "type2"  # PI
    TYPE3 = "type3"  # PID

    @property
    def arity(self) -> int:
        return {"type1": 1, "type2": 2, "type3": 3}[self.value]

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return {
            "type1": ("ki",),
            "type2": ("kp", "ki"),
            "type3": ("kp", "ki", "kd"),
        }[self.value]


def _check_arity(compensator_type: CompensatorType, parameters: Sequence[float]) -> None:
    if len(parameters) != compensator_type.arity:
        raise ArityMismatchError(compensator_type.value, compensator_type.arity, len(parameters))


@dataclass(frozen=True)
class CompensatorSpec:
    """A compensator type together with its ordered gain parameters."""
    type: CompensatorType
    parameters: Tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, "type", CompensatorType(self.type))
        object.__setattr__(self, "parameters", tuple(float(p) for p in self.parameters))
        _check_arity(self.type, self.parameters)

    def as_dict(self) -> dict:
        return dict(zip(self.type.parameter_names, self.parameters))


@dataclass(frozen=True)
class Type2Design:
    kp: float
    ki: float
    crossover_hz: float
    zero_hz: float
    phase_boost_deg: float

    @property
    def spec(self) -> CompensatorSpec:
        return CompensatorSpec(CompensatorType.TYPE2, (self.kp, self.ki))


@dataclass(frozen=True)
class Type3Design:
    kp: float
    ki: float
    kd: float
    crossover_hz: float
    zero1_hz: float
    zero2_hz: float
    pole1_hz: float
    pole2_hz: float
    phase_boost_deg: float

    @property
    def spec(self) -> CompensatorSpec:
        return CompensatorSpec(CompensatorType.TYPE3, (self.kp, self.ki, self.kd))


def compensator_tf(
    frequency: float,
    compensator_type: CompensatorType,
    parameters: Sequence[float],
) -> complex:
    """
    Evaluate the compensator at `frequency` Hz.

    Raises ArityMismatchError when the parameter count does not match the
    type. At 0 Hz the integrator term is infinite and the result is a
    non-finite phasor rather than an exception.
    """
    compensator_type = CompensatorType(compensator_type)
    _check_arity(compensator_type, parameters)

    s = complex(0.0, 2 * math.pi * frequency)

    def integral(ki: float) -> complex:
        if s == 0:
            return complex(math.nan, -math.inf) if ki else complex(0.0, 0.0)
        return ki / s

    if compensator_type == CompensatorType.TYPE1:
        (ki,) = parameters
        return integral(ki)
    elif compensator_type == CompensatorType.TYPE2:
        kp, ki = parameters
        return kp + integral(ki)
    else:
        kp, ki, kd = parameters
        return kp + integral(ki) + kd * s


class CompensatorDesigner:
    """
    Designs and verifies compensators for one plant.

    Holds only the immutable plant and settings; every method is a pure
    function of its arguments.
    """

    def __init__(self, plant: Plant, settings: Optional[AnalysisSettings] = None):
        self.plant = plant
        self.settings = settings or DEFAULT_SETTINGS

    # --- Design ---

    def _plant_at(self, target_crossover_hz: float) -> Tuple[float, float, float]:
        """Plant gain (dB), phase (deg) and normalizing compensator gain at the target."""
        if not target_crossover_hz > 0:
            raise InvalidRangeError(
                f"Target crossover must be positive, got {target_crossover_hz}"
            )
        self.plant.require_complete()

        h = self.plant.transfer_function(target_crossover_hz)
        plant_gain = gain_db(h)
        plant_phase = phase_degrees(h)
        if not math.isfinite(plant_gain):
            raise InvalidRangeError(
                f"Plant gain at {target_crossover_hz} Hz is {plant_gain} dB; "
                "no finite compensator gain reaches 0 dB there"
            )
        compensator_gain = 10 ** (-plant_gain / 20)
        return plant_gain, plant_phase, compensator_gain

    def design_type2(self, target_crossover_hz: float, target_phase_margin_deg: float) -> Type2Design:
        """
        PI design: unity loop gain at the target crossover, zero at fc/10.

        The phase boost needed to meet the target margin is reported in
        the result but the zero stays at the fixed decade ratio.
        """
        plant_gain, plant_phase, gain = self._plant_at(target_crossover_hz)
        phase_boost = target_phase_margin_deg - (180 + plant_phase) + TYPE2_PHASE_SAFETY_DEG

        zero_hz = target_crossover_hz / TYPE2_ZERO_DIVISOR
        design = Type2Design(
            kp=gain,
            ki=gain * 2 * math.pi * zero_hz,
            crossover_hz=target_crossover_hz,
            zero_hz=zero_hz,
            phase_boost_deg=phase_boost,
        )
        logger.debug(
            "Type 2 design at fc=%.6g Hz: plant %.3f dB / %.3f°, Kp=%.6g, Ki=%.6g, boost=%.2f°",
            target_crossover_hz, plant_gain, plant_phase, design.kp, design.ki, phase_boost,
        )
        return design

    def design_type3(self, target_crossover_hz: float, target_phase_margin_deg: float) -> Type3Design:
        """
        PID design: unity loop gain at the target crossover, zeros at
        fc/10 and fc/5, poles at 5·fc and 10·fc.

        Only zero1 and pole1 feed Ki and Kd. zero2 and pole2 are reported
        for a richer four-break network; the three-term evaluator here
        does not use them.
        """
        plant_gain, plant_phase, gain = self._plant_at(target_crossover_hz)
        phase_boost = target_phase_margin_deg - (180 + plant_phase) + TYPE3_PHASE_SAFETY_DEG

        zero1_hz, zero2_hz = (target_crossover_hz / d for d in TYPE3_ZERO_DIVISORS)
        pole1_hz, pole2_hz = (target_crossover_hz * m for m in TYPE3_POLE_MULTIPLIERS)

        design = Type3Design(
            kp=gain,
            ki=gain * 2 * math.pi * zero1_hz,
            kd=gain / (2 * math.pi * pole1_hz),
            crossover_hz=target_crossover_hz,
            zero1_hz=zero1_hz,
            zero2_hz=zero2_hz,
            pole1_hz=pole1_hz,
            pole2_hz=pole2_hz,
            phase_boost_deg=phase_boost,
        )
        logger.debug(
            "Type 3 design at fc=%.6g Hz: plant %.3f dB / %.3f°, Kp=%.6g, Ki=%.6g, Kd=%.6g",
            target_crossover_hz, plant_gain, plant_phase, design.kp, design.ki, design.kd,
        )
        return design

    # --- Loop transfer functions ---

    def compensator_tf(self, frequency: float, compensator_type: CompensatorType, parameters: Sequence[float]) -> complex:
        return compensator_tf(frequency, compensator_type, parameters)

    def open_loop_tf(self, frequency: float, compensator_type: CompensatorType, parameters: Sequence[float]) -> complex:
        """Plant × compensator."""
        return self.plant.transfer_function(frequency) * compensator_tf(frequency, compensator_type, parameters)

    def closed_loop_tf(self, frequency: float, compensator_type: CompensatorType, parameters: Sequence[float]) -> complex:
        """
        L / (1 + L) for open loop L.

        When L is exactly -1 the loop is marginal and the result is
        NaN + NaN·j instead of a ZeroDivisionError.
        """
        open_loop = self.open_loop_tf(frequency, compensator_type, parameters)
        denominator = 1 + open_loop
        if denominator == 0:
            return complex(math.nan, math.nan)
        return open_loop / denominator

    # --- Verification ---

    def verify_design(self, compensator_type: CompensatorType, parameters: Sequence[float]) -> MarginResult:
        """
        Measure crossover, phase margin and gain margin of the compensated loop.

        Uses the plant analyzer's bisection searches over the configured
        bracket (1 Hz to 1 MHz by default). A large gap between the target
        and the verified values means the fixed-ratio placement under- or
        over-compensated.
        """
        compensator_type = CompensatorType(compensator_type)
        _check_arity(compensator_type, parameters)
        self.plant.require_complete()

        result = measure_margins(
            lambda f: self.open_loop_tf(f, compensator_type, parameters),
            self.settings,
        )
        if not result.converged:
            logger.warning(
                "Verification of %s compensator %s did not fully converge",
                compensator_type.value, list(parameters),
            )
        return result

    def closed_loop_bandwidth(self, compensator_type: CompensatorType, parameters: Sequence[float]) -> float:
        """Frequency (Hz) where the closed-loop gain falls to -3 dB."""
        compensator_type = CompensatorType(compensator_type)
        _check_arity(compensator_type, parameters)
        self.plant.require_complete()

        s = self.settings
        return search_crossover(
            lambda f: self.closed_loop_tf(f, compensator_type, parameters),
            s.search_start_hz,
            s.search_end_hz,
            target_db=CLOSED_LOOP_BANDWIDTH_DB,
            tolerance_db=s.gain_tolerance_db,
            iterations=s.max_iterations,
        ).frequency

    def loop_sweep(
        self,
        compensator_type: CompensatorType,
        parameters: Sequence[float],
        start_hz: Optional[float] = None,
        end_hz: Optional[float] = None,
        n_points: Optional[int] = None,
        closed: bool = False,
    ) -> List[SweepPoint]:
        """Bode data for the open (default) or closed compensated loop."""
        compensator_type = CompensatorType(compensator_type)
        _check_arity(compensator_type, parameters)

        evaluate = self.closed_loop_tf if closed else self.open_loop_tf
        s = self.settings
        return frequency_sweep(
            lambda f: evaluate(f, compensator_type, parameters),
            s.sweep_start_hz if start_hz is None else start_hz,
            s.sweep_end_hz if end_hz is None else end_hz,
            s.sweep_points if n_points is None else n_points,
        )
