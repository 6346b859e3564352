"""Pydantic models for LoopForge API requests and responses."""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, Field

from loopcore.analysis import MarginResult, SweepPoint, gain_db, phase_degrees
from loopcore.compensator import CompensatorType
from loopcore.components import Component, ComponentKind
from loopcore.plant import Plant, SecondOrderParams


def finite_or_none(value: float) -> Optional[float]:
    """JSON has no inf/NaN; degenerate numbers travel as null."""
    return value if math.isfinite(value) else None


# --- Circuit ---

class ComponentModel(BaseModel):
    kind: ComponentKind
    value: float
    unit: str = Field("", description="Unit label with optional SI prefix (mH, µF, kΩ)")
    name: str = ""

    def to_component(self) -> Component:
        return Component(kind=self.kind, value=self.value, unit=self.unit, name=self.name)


class PlantRequest(BaseModel):
    """Ordered component list. The first R, L and C found form the plant."""
    components: list[ComponentModel] = Field(..., min_length=1)
    search_start_hz: Optional[float] = Field(None, gt=0, description="Margin search lower bound (Hz)")
    search_end_hz: Optional[float] = Field(None, gt=0, description="Margin search upper bound (Hz)")

    def to_plant(self) -> Plant:
        return Plant.from_components(c.to_component() for c in self.components)


# --- Phasors ---

class PhasorModel(BaseModel):
    real: Optional[float]
    imag: Optional[float]
    magnitude: Optional[float]
    gain_db: Optional[float]
    phase_deg: Optional[float]

    @classmethod
    def from_complex(cls, z: complex) -> PhasorModel:
        return cls(
            real=finite_or_none(z.real),
            imag=finite_or_none(z.imag),
            magnitude=finite_or_none(abs(z)),
            gain_db=finite_or_none(gain_db(z)),
            phase_deg=finite_or_none(phase_degrees(z)),
        )


class ImpedanceRequest(BaseModel):
    components: list[ComponentModel] = Field(..., min_length=1)
    frequency: float = Field(..., gt=0, description="Frequency (Hz)")


class ComponentImpedance(BaseModel):
    name: str
    kind: ComponentKind
    display: str
    impedance: PhasorModel


class ImpedanceResponse(BaseModel):
    frequency: float
    impedances: list[ComponentImpedance]


class TransferFunctionRequest(PlantRequest):
    frequency: float = Field(..., gt=0, description="Frequency (Hz)")


class TransferFunctionResponse(BaseModel):
    frequency: float
    plant_complete: bool
    missing: list[str] = []
    response: PhasorModel


# --- Sweeps ---

class SweepRequest(PlantRequest):
    freq_start: Optional[float] = Field(None, description="Start frequency (Hz)")
    freq_end: Optional[float] = Field(None, description="End frequency (Hz)")
    num_points: Optional[int] = Field(None, le=5000, description="Number of log-spaced points")


class SweepResponse(BaseModel):
    frequency: list[float]
    magnitude_db: list[Optional[float]]
    phase_deg: list[Optional[float]]
    num_points: int

    @classmethod
    def from_points(cls, points: list[SweepPoint]) -> SweepResponse:
        return cls(
            frequency=[p.frequency for p in points],
            magnitude_db=[finite_or_none(p.gain_db) for p in points],
            phase_deg=[finite_or_none(p.phase_deg) for p in points],
            num_points=len(points),
        )


# --- Margins ---

class MarginsModel(BaseModel):
    crossover_hz: Optional[float]
    phase_margin_deg: Optional[float]
    folded_phase_margin_deg: Optional[float] = Field(None, description="phase_margin_deg folded into (-180, 180]")
    gain_margin_db: Optional[float]
    phase_180_hz: Optional[float]
    converged: bool

    @classmethod
    def from_result(cls, result: MarginResult) -> MarginsModel:
        return cls(
            crossover_hz=finite_or_none(result.crossover_hz),
            phase_margin_deg=finite_or_none(result.phase_margin_deg),
            folded_phase_margin_deg=finite_or_none(result.folded_phase_margin_deg),
            gain_margin_db=finite_or_none(result.gain_margin_db),
            phase_180_hz=finite_or_none(result.phase_180_hz),
            converged=result.converged,
        )


class SecondOrderModel(BaseModel):
    natural_frequency: float
    resonant_frequency_hz: float
    damping_ratio: float
    quality_factor: Optional[float]

    @classmethod
    def from_params(cls, params: SecondOrderParams) -> SecondOrderModel:
        return cls(
            natural_frequency=params.natural_frequency,
            resonant_frequency_hz=params.resonant_frequency_hz,
            damping_ratio=params.damping_ratio,
            quality_factor=finite_or_none(params.quality_factor),
        )


class PlantMarginsResponse(BaseModel):
    margins: MarginsModel
    second_order: SecondOrderModel


# --- Compensator ---

class DesignRequest(PlantRequest):
    compensator_type: CompensatorType = CompensatorType.TYPE2
    target_crossover_hz: float = Field(..., gt=0, description="Target crossover frequency (Hz)")
    target_phase_margin_deg: float = Field(45.0, ge=0, le=180, description="Target phase margin (degrees)")


class DesignResponse(BaseModel):
    compensator_type: CompensatorType
    parameters: dict[str, float]
    design: dict[str, float]
    verification: MarginsModel


class VerifyRequest(PlantRequest):
    compensator_type: CompensatorType
    parameters: list[float]


class VerifyResponse(BaseModel):
    margins: MarginsModel
    closed_loop_bandwidth_hz: Optional[float]


class LoopSweepRequest(SweepRequest):
    compensator_type: CompensatorType
    parameters: list[float]
    closed: bool = False
