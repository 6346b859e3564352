"""
Frequency-response analysis: gain/phase, Bode sweeps and margin searches.

Everything here works on a `response` callable mapping a frequency in Hz
to a complex phasor. The bare plant (Plant.transfer_function) and the
compensated loop (CompensatorDesigner.open_loop_tf) are both responses,
so the same bisection code measures both.

Margin searches are plain bisections with an arithmetic midpoint and a
fixed iteration budget. They assume the searched quantity is monotone
over the bracket:

    crossover:  gain (dB) decreases with frequency
    phase-180:  phase decreases toward -180° with frequency

This holds for the second-order low-pass plant. For responses with
several resonances the search still terminates but may settle on a
spurious point. When the budget runs out without meeting tolerance the
midpoint of the final bracket is returned as a best-effort estimate and
SearchResult.converged is False.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

import numpy as np

from loopcore.errors import InvalidRangeError
from loopcore.plant import Plant
from loopcore.settings import AnalysisSettings, DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

Response = Callable[[float], complex]


class SweepPoint(NamedTuple):
    frequency: float
    gain_db: float
    phase_deg: float


@dataclass(frozen=True)
class SearchResult:
    """Outcome of one bisection search."""
    frequency: float
    value: float       # gain (dB) or phase (deg) measured at `frequency`
    iterations: int
    converged: bool


@dataclass(frozen=True)
class MarginResult:
    """Stability margins of a loop, measured by bisection."""
    crossover_hz: float
    phase_margin_deg: float
    gain_margin_db: float
    phase_180_hz: float
    converged: bool = True

    @property
    def folded_phase_margin_deg(self) -> float:
        """phase_margin_deg folded into (-180, 180]."""
        return fold_degrees(self.phase_margin_deg)


def fold_degrees(angle: float) -> float:
    """Fold an angle in degrees into (-180, 180]. NaN passes through."""
    if not math.isfinite(angle):
        return angle
    folded = math.fmod(angle, 360.0)
    if folded > 180.0:
        folded -= 360.0
    elif folded <= -180.0:
        folded += 360.0
    return folded


def gain_db(phasor: complex) -> float:
    """20·log10|z|. Zero magnitude gives -inf, NaN input gives NaN."""
    magnitude = abs(phasor)
    if math.isnan(magnitude):
        return math.nan
    if magnitude == 0:
        return -math.inf
    return 20 * math.log10(magnitude)


def phase_degrees(phasor: complex) -> float:
    """Phase angle in degrees, in (-180, 180]."""
    phase = math.degrees(math.atan2(phasor.imag, phasor.real))
    if phase == -180.0:
        return 180.0
    return phase


def _check_bounds(start_hz: float, end_hz: float) -> None:
    if not start_hz > 0:
        raise InvalidRangeError(f"Start frequency must be positive, got {start_hz}")
    if not end_hz > start_hz:
        raise InvalidRangeError(
            f"End frequency ({end_hz}) must be greater than start frequency ({start_hz})"
        )


def sweep_frequencies(start_hz: float, end_hz: float, n_points: int) -> np.ndarray:
    """
    Logarithmically spaced frequencies from start_hz to end_hz inclusive.

    f_i = 10^(log10(start) + i·step), step = (log10(end) - log10(start)) / (n - 1)
    """
    _check_bounds(start_hz, end_hz)
    if n_points < 2:
        raise InvalidRangeError(f"A sweep needs at least 2 points, got {n_points}")

    log_start = np.log10(start_hz)
    step = (np.log10(end_hz) - log_start) / (n_points - 1)
    return 10 ** (log_start + np.arange(n_points) * step)


def frequency_sweep(
    response: Response,
    start_hz: float,
    end_hz: float,
    n_points: int,
) -> List[SweepPoint]:
    """
    Evaluate `response` over a logarithmic sweep.

    Degenerate points (zero or non-finite phasors) come back as -inf/NaN
    entries; the sweep always has exactly n_points entries.
    """
    points = []
    for f in sweep_frequencies(start_hz, end_hz, n_points):
        h = response(float(f))
        points.append(SweepPoint(float(f), gain_db(h), phase_degrees(h)))
    return points


def _bisect(
    measure: Callable[[float], Tuple[float, float]],
    start_hz: float,
    end_hz: float,
    tolerance: float,
    iterations: int,
    label: str,
) -> SearchResult:
    """
    Shared bisection loop.

    `measure(f)` returns (value, error). A positive error means the target
    lies above f, so the lower bound is raised; otherwise the upper bound
    is lowered.
    """
    _check_bounds(start_hz, end_hz)
    if iterations < 1:
        raise InvalidRangeError(f"Iteration budget must be at least 1, got {iterations}")

    for i in range(iterations):
        mid = (start_hz + end_hz) / 2
        value, error = measure(mid)

        if abs(error) < tolerance:
            return SearchResult(frequency=mid, value=value, iterations=i + 1, converged=True)

        if error > 0:
            start_hz = mid
        else:
            end_hz = mid

    mid = (start_hz + end_hz) / 2
    value, error = measure(mid)
    logger.warning(
        "%s search did not converge in %d iterations; best estimate %.6g Hz (error %.4g)",
        label, iterations, mid, error,
    )
    return SearchResult(frequency=mid, value=value, iterations=iterations, converged=False)


def search_crossover(
    response: Response,
    start_hz: float,
    end_hz: float,
    target_db: float = 0.0,
    tolerance_db: float = 0.01,
    iterations: int = 100,
) -> SearchResult:
    """Bisect for the frequency where gain_db(response) == target_db."""
    def measure(f: float) -> Tuple[float, float]:
        g = gain_db(response(f))
        return g, g - target_db

    return _bisect(measure, start_hz, end_hz, tolerance_db, iterations, "Crossover")


def search_phase_180(
    response: Response,
    start_hz: float,
    end_hz: float,
    tolerance_deg: float = 1.0,
    iterations: int = 100,
    unwrap: bool = False,
) -> SearchResult:
    """
    Bisect for the frequency where the phase of `response` is -180°.

    A phase above -180° raises the lower bound, anything else lowers the
    upper bound. Phase is reported in (-180, 180], so a lag just past
    -180° shows up as a positive angle and sends the bracket upward. Pass
    unwrap=True to read positive phases as wrapped lag instead.
    """
    def measure(f: float) -> Tuple[float, float]:
        phase = phase_degrees(response(f))
        error = phase + 180.0
        if unwrap and error > 180.0:
            error -= 360.0
        return phase, error

    return _bisect(measure, start_hz, end_hz, tolerance_deg, iterations, "Phase -180°")


def find_crossover(
    response: Response,
    start_hz: float,
    end_hz: float,
    target_db: float = 0.0,
    tolerance_db: float = 0.01,
    iterations: int = 100,
) -> float:
    """
    Frequency (Hz) where the gain of `response` crosses target_db (0 dB).

    Assumes gain decreases monotonically over [start_hz, end_hz]. If the
    tolerance is not met within the budget the result is only the
    midpoint of the final bracket; use search_crossover to tell.
    """
    return search_crossover(response, start_hz, end_hz, target_db, tolerance_db, iterations).frequency


def find_phase_180(
    response: Response,
    start_hz: float,
    end_hz: float,
    tolerance_deg: float = 1.0,
    iterations: int = 100,
    unwrap: bool = False,
) -> float:
    """
    Frequency (Hz) where the phase of `response` reaches -180°.

    Assumes phase decreases monotonically toward -180° over the bracket.
    Best-effort midpoint on budget exhaustion, as for find_crossover.
    """
    return search_phase_180(response, start_hz, end_hz, tolerance_deg, iterations, unwrap).frequency


def phase_margin(response: Response, crossover_hz: float) -> float:
    """
    180° plus the phase of `response` at the crossover frequency.

    Not folded: a loop lagging past -180° at crossover reports a margin
    above 180°. See fold_degrees for the signed reading.
    """
    return 180.0 + phase_degrees(response(crossover_hz))


def gain_margin(
    response: Response,
    start_hz: float = DEFAULT_SETTINGS.search_start_hz,
    end_hz: float = DEFAULT_SETTINGS.search_end_hz,
    tolerance_deg: float = DEFAULT_SETTINGS.phase_tolerance_deg,
    iterations: int = DEFAULT_SETTINGS.max_iterations,
    unwrap: bool = False,
) -> float:
    """Negative gain (dB) of `response` at its -180° phase frequency."""
    f180 = find_phase_180(response, start_hz, end_hz, tolerance_deg, iterations, unwrap)
    return -gain_db(response(f180))


def measure_margins(response: Response, settings: AnalysisSettings = DEFAULT_SETTINGS) -> MarginResult:
    """Run both bisections on `response` within the configured bracket."""
    crossover = search_crossover(
        response,
        settings.search_start_hz,
        settings.search_end_hz,
        tolerance_db=settings.gain_tolerance_db,
        iterations=settings.max_iterations,
    )
    phase_180 = search_phase_180(
        response,
        settings.search_start_hz,
        settings.search_end_hz,
        tolerance_deg=settings.phase_tolerance_deg,
        iterations=settings.max_iterations,
    )

    result = MarginResult(
        crossover_hz=crossover.frequency,
        phase_margin_deg=phase_margin(response, crossover.frequency),
        gain_margin_db=-gain_db(response(phase_180.frequency)),
        phase_180_hz=phase_180.frequency,
        converged=crossover.converged and phase_180.converged,
    )
    logger.debug(
        "Margins: fc=%.6g Hz, PM=%.3f°, GM=%.3f dB (f180=%.6g Hz)",
        result.crossover_hz, result.phase_margin_deg, result.gain_margin_db, result.phase_180_hz,
    )
    return result


class PlantAnalyzer:
    """
    Analysis of a single plant.

    Pure queries over an immutable Plant; nothing is cached between calls.
    Transfer-function and sweep queries accept an incomplete plant (they
    return zero phasors). Margin searches do not: they raise
    MissingPlantElementError instead of reporting a meaningless 0 Hz.
    """

    def __init__(self, plant: Plant, settings: Optional[AnalysisSettings] = None):
        self.plant = plant
        self.settings = settings or DEFAULT_SETTINGS

    def transfer_function(self, frequency: float) -> complex:
        return self.plant.transfer_function(frequency)

    def gain_db(self, frequency: float) -> float:
        return gain_db(self.transfer_function(frequency))

    def phase_degrees(self, frequency: float) -> float:
        return phase_degrees(self.transfer_function(frequency))

    def frequency_sweep(
        self,
        start_hz: Optional[float] = None,
        end_hz: Optional[float] = None,
        n_points: Optional[int] = None,
    ) -> List[SweepPoint]:
        s = self.settings
        return frequency_sweep(
            self.plant.transfer_function,
            s.sweep_start_hz if start_hz is None else start_hz,
            s.sweep_end_hz if end_hz is None else end_hz,
            s.sweep_points if n_points is None else n_points,
        )

    def _searchable(self) -> Response:
        return self.plant.require_complete().transfer_function

    def find_crossover(self, start_hz: Optional[float] = None, end_hz: Optional[float] = None) -> float:
        s = self.settings.with_search_bounds(start_hz, end_hz)
        return find_crossover(
            self._searchable(), s.search_start_hz, s.search_end_hz,
            tolerance_db=s.gain_tolerance_db, iterations=s.max_iterations,
        )

    def find_phase_180(self, start_hz: Optional[float] = None, end_hz: Optional[float] = None) -> float:
        s = self.settings.with_search_bounds(start_hz, end_hz)
        return find_phase_180(
            self._searchable(), s.search_start_hz, s.search_end_hz,
            tolerance_deg=s.phase_tolerance_deg, iterations=s.max_iterations,
        )

    def phase_margin(self, crossover_hz: float) -> float:
        return phase_margin(self._searchable(), crossover_hz)

    def gain_margin(self, start_hz: Optional[float] = None, end_hz: Optional[float] = None) -> float:
        s = self.settings.with_search_bounds(start_hz, end_hz)
        return gain_margin(
            self._searchable(), s.search_start_hz, s.search_end_hz,
            tolerance_deg=s.phase_tolerance_deg, iterations=s.max_iterations,
        )

    def margins(self) -> MarginResult:
        return measure_margins(self._searchable(), self.settings)
