"""
LoopForge Analysis Engine

Frequency-domain analysis of an idealized R-L-C converter plant and
synthesis of Type 1/2/3 feedback compensators.

All functions are pure: plants, compensator specs and results are
immutable values, and nothing is cached between calls.
"""

from loopcore.components import Component, ComponentKind, impedance, engineering_notation
from loopcore.plant import Plant, SecondOrderParams, transfer_function
from loopcore.analysis import (
    PlantAnalyzer,
    MarginResult,
    SearchResult,
    SweepPoint,
    gain_db,
    phase_degrees,
    frequency_sweep,
    find_crossover,
    find_phase_180,
    phase_margin,
    gain_margin,
    fold_degrees,
)
from loopcore.compensator import (
    CompensatorDesigner,
    CompensatorSpec,
    CompensatorType,
    Type2Design,
    Type3Design,
    compensator_tf,
)
from loopcore.errors import (
    LoopAnalysisError,
    MissingPlantElementError,
    InvalidRangeError,
    ArityMismatchError,
)
from loopcore.settings import AnalysisSettings

__version__ = "0.1.0"
