"""REST API endpoints for data, parameters, optimizer control and analysis."""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from backend.analysis.report import CHART_MODES, analyze, chart_series
from backend.api.schemas import DataRecords, DataUpload, FitParamsModel, OptimizerConfig
from backend.api.session import finite_or_none, session
from backend.config import DEDefaults, PARAM_BOUNDS, PARAM_NAMES
from backend.data.ingest import ingest_records, parse_delimited
from backend.evolution.controller import NoDataError

router = APIRouter(prefix="/api")


def _require_idle():
    if session.optimizing:
        raise HTTPException(status_code=409, detail="Optimization is running")


@router.get("/health")
async def health_check():
    return {"status": "ok"}


@router.get("/defaults")
async def get_defaults():
    """Return fixed cylinder constants, optimizer defaults and parameter bounds."""
    return {
        "cylinder_params": asdict(session.cylinder_params),
        "optimizer": asdict(DEDefaults()),
        "bounds": {name: list(b) for name, b in zip(PARAM_NAMES, PARAM_BOUNDS)},
    }


@router.post("/data/upload")
async def upload_data(upload: DataUpload):
    """Ingest delimited text (CSV or TSV, header on the first line)."""
    _require_idle()
    return session.load(parse_delimited(upload.text))


@router.post("/data/records")
async def upload_records(payload: DataRecords):
    _require_idle()
    return session.load(ingest_records(r.model_dump() for r in payload.records))


@router.get("/params")
async def get_params():
    return session.params.to_dict()


@router.put("/params")
async def set_params(params: FitParamsModel):
    _require_idle()
    session.params = params.to_params()
    return session.params.to_dict()


@router.post("/params/randomize")
async def randomize_params(seed: int = None):
    _require_idle()
    return session.randomize_params(seed).to_dict()


@router.get("/params/canonical")
async def get_canonical_params():
    return session.params.to_canonical()


@router.post("/optimizer/start")
async def start_optimizer(config: OptimizerConfig):
    try:
        return session.start_optimization(config)
    except NoDataError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/optimizer/stop")
async def stop_optimizer():
    session.stop_optimization()
    return session.status()


@router.post("/optimizer/boost")
async def boost_optimizer():
    if not session.controller.boost():
        raise HTTPException(status_code=409, detail="No optimization running")
    return session.status()


@router.get("/optimizer/status")
async def optimizer_status():
    return session.status()


@router.get("/analysis")
async def get_analysis(include_rows: bool = False):
    """Error statistics of the current parameters over the full dataset."""
    report = analyze(session.dataset, session.params, session.cylinder_params)
    if not include_rows:
        report.pop("rows")
    return finite_or_none(report)


@router.get("/chart")
async def get_chart(mode: str = "cylinder"):
    if mode not in CHART_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown chart mode: {mode}")
    return finite_or_none(chart_series(session.dataset, session.params,
                                       session.cylinder_params, mode))
