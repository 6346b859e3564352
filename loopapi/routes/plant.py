"""Plant routes: impedance, transfer function, Bode sweep and margins."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from loopapi.dependencies import get_settings
from loopapi.models import (
    ComponentImpedance,
    ImpedanceRequest,
    ImpedanceResponse,
    MarginsModel,
    PhasorModel,
    PlantMarginsResponse,
    PlantRequest,
    SecondOrderModel,
    SweepRequest,
    SweepResponse,
    TransferFunctionRequest,
    TransferFunctionResponse,
)
from loopcore.analysis import PlantAnalyzer
from loopcore.components import impedance
from loopcore.errors import LoopAnalysisError, MissingPlantElementError
from loopcore.settings import AnalysisSettings

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/plant/impedance", response_model=ImpedanceResponse)
async def component_impedance(request: ImpedanceRequest):
    """Impedance of every listed component at one frequency."""
    impedances = []
    for model in request.components:
        comp = model.to_component()
        impedances.append(ComponentImpedance(
            name=comp.name,
            kind=comp.kind,
            display=comp.display,
            impedance=PhasorModel.from_complex(impedance(comp, request.frequency)),
        ))
    return ImpedanceResponse(frequency=request.frequency, impedances=impedances)


@router.post("/plant/transfer-function", response_model=TransferFunctionResponse)
async def plant_transfer_function(request: TransferFunctionRequest):
    """H(jω) of the plant. An incomplete plant returns the zero phasor."""
    plant = request.to_plant()
    return TransferFunctionResponse(
        frequency=request.frequency,
        plant_complete=plant.is_complete,
        missing=list(plant.missing),
        response=PhasorModel.from_complex(plant.transfer_function(request.frequency)),
    )


@router.post("/plant/sweep", response_model=SweepResponse)
async def plant_sweep(request: SweepRequest, settings: AnalysisSettings = Depends(get_settings)):
    """Logarithmic Bode sweep of the plant."""
    try:
        analyzer = PlantAnalyzer(request.to_plant(), settings)
        points = analyzer.frequency_sweep(request.freq_start, request.freq_end, request.num_points)
        return SweepResponse.from_points(points)
    except LoopAnalysisError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/plant/margins", response_model=PlantMarginsResponse)
async def plant_margins(request: PlantRequest, settings: AnalysisSettings = Depends(get_settings)):
    """Crossover, phase margin and gain margin of the bare plant."""
    try:
        analyzer = PlantAnalyzer(
            request.to_plant(),
            settings.with_search_bounds(request.search_start_hz, request.search_end_hz),
        )
        margins = analyzer.margins()
        second_order = analyzer.plant.second_order_params()
        return PlantMarginsResponse(
            margins=MarginsModel.from_result(margins),
            second_order=SecondOrderModel.from_params(second_order),
        )
    except MissingPlantElementError as e:
        logger.warning("Rejected margin request: %s", e)
        raise HTTPException(status_code=422, detail=str(e))
    except LoopAnalysisError as e:
        raise HTTPException(status_code=400, detail=str(e))
