"""Compensator routes: design, verification and loop Bode data."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from loopapi.dependencies import get_settings
from loopapi.models import (
    DesignRequest,
    DesignResponse,
    LoopSweepRequest,
    MarginsModel,
    SweepResponse,
    VerifyRequest,
    VerifyResponse,
    finite_or_none,
)
from loopcore.compensator import CompensatorDesigner, CompensatorType
from loopcore.errors import LoopAnalysisError, MissingPlantElementError
from loopcore.settings import AnalysisSettings

router = APIRouter()

logger = logging.getLogger(__name__)


def _designer(request, settings: AnalysisSettings) -> CompensatorDesigner:
    return CompensatorDesigner(
        request.to_plant(),
        settings.with_search_bounds(request.search_start_hz, request.search_end_hz),
    )


@router.post("/compensator/design", response_model=DesignResponse)
async def design_compensator(request: DesignRequest, settings: AnalysisSettings = Depends(get_settings)):
    """Synthesize a Type 2 or Type 3 compensator and verify it on the plant."""
    if request.compensator_type == CompensatorType.TYPE1:
        raise HTTPException(status_code=400, detail="No design procedure for type1; use type2 or type3.")

    try:
        designer = _designer(request, settings)
        if request.compensator_type == CompensatorType.TYPE2:
            design = designer.design_type2(request.target_crossover_hz, request.target_phase_margin_deg)
        else:
            design = designer.design_type3(request.target_crossover_hz, request.target_phase_margin_deg)

        spec = design.spec
        verification = designer.verify_design(spec.type, spec.parameters)

        logger.info(
            "Designed %s compensator for fc=%.6g Hz: %s",
            spec.type.value, request.target_crossover_hz, spec.as_dict(),
        )
        return DesignResponse(
            compensator_type=spec.type,
            parameters=spec.as_dict(),
            design=asdict(design),
            verification=MarginsModel.from_result(verification),
        )
    except MissingPlantElementError as e:
        logger.warning("Rejected design request: %s", e)
        raise HTTPException(status_code=422, detail=str(e))
    except LoopAnalysisError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/compensator/verify", response_model=VerifyResponse)
async def verify_compensator(request: VerifyRequest, settings: AnalysisSettings = Depends(get_settings)):
    """Margins and closed-loop bandwidth of plant × compensator."""
    try:
        designer = _designer(request, settings)
        margins = designer.verify_design(request.compensator_type, request.parameters)
        bandwidth = designer.closed_loop_bandwidth(request.compensator_type, request.parameters)
        return VerifyResponse(
            margins=MarginsModel.from_result(margins),
            closed_loop_bandwidth_hz=finite_or_none(bandwidth),
        )
    except MissingPlantElementError as e:
        logger.warning("Rejected verify request: %s", e)
        raise HTTPException(status_code=422, detail=str(e))
    except LoopAnalysisError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/compensator/sweep", response_model=SweepResponse)
async def compensator_sweep(request: LoopSweepRequest, settings: AnalysisSettings = Depends(get_settings)):
    """Bode data of the open (default) or closed compensated loop."""
    try:
        designer = _designer(request, settings)
        points = designer.loop_sweep(
            request.compensator_type,
            request.parameters,
            request.freq_start,
            request.freq_end,
            request.num_points,
            closed=request.closed,
        )
        return SweepResponse.from_points(points)
    except LoopAnalysisError as e:
        raise HTTPException(status_code=400, detail=str(e))
