"""Search bounds, iteration budgets and tolerances for the analysis engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class AnalysisSettings:
    """Defaults suit power-converter loops switching up to ~1 MHz."""

    # Margin search bracket (Hz)
    search_start_hz: float = 1.0
    search_end_hz: float = 1e6

    # Bisection budget and stopping tolerances
    max_iterations: int = 100
    gain_tolerance_db: float = 0.01
    phase_tolerance_deg: float = 1.0

    # Default Bode sweep
    sweep_start_hz: float = 10.0
    sweep_end_hz: float = 1e6
    sweep_points: int = 200

    @classmethod
    def from_env(cls, prefix: str = "LOOPFORGE_") -> AnalysisSettings:
        """Load settings from environment variables, falling back to defaults."""
        defaults = cls()

        def _float(name: str, default: float) -> float:
            raw = os.getenv(prefix + name)
            return float(raw) if raw else default

        def _int(name: str, default: int) -> int:
            raw = os.getenv(prefix + name)
            return int(raw) if raw else default

        return cls(
            search_start_hz=_float("SEARCH_START_HZ", defaults.search_start_hz),
            search_end_hz=_float("SEARCH_END_HZ", defaults.search_end_hz),
            max_iterations=_int("MAX_ITERATIONS", defaults.max_iterations),
            gain_tolerance_db=_float("GAIN_TOLERANCE_DB", defaults.gain_tolerance_db),
            phase_tolerance_deg=_float("PHASE_TOLERANCE_DEG", defaults.phase_tolerance_deg),
            sweep_start_hz=_float("SWEEP_START_HZ", defaults.sweep_start_hz),
            sweep_end_hz=_float("SWEEP_END_HZ", defaults.sweep_end_hz),
            sweep_points=_int("SWEEP_POINTS", defaults.sweep_points),
        )

    def with_search_bounds(
        self,
        start_hz: Optional[float] = None,
        end_hz: Optional[float] = None,
    ) -> AnalysisSettings:
        """Copy with the margin search bracket overridden where given."""
        return replace(
            self,
            search_start_hz=self.search_start_hz if start_hz is None else start_hz,
            search_end_hz=self.search_end_hz if end_hz is None else end_hz,
        )


DEFAULT_SETTINGS = AnalysisSettings()
