from fastapi import APIRouter, Depends, Response

from echo_core.api.dependencies import get_core
from echo_core.core.metrics import METRICS
from echo_core.engine import EchoCore

router = APIRouter(tags=["ops"])


@router.get("/healthz")
def healthz(core: EchoCore = Depends(get_core)):
    """Liveness plus a clock read; a dead clock surfaces as 503."""
    return {"status": "ok", "now": core.now().isoformat()}


@router.get("/metrics")
def metrics():
    return Response(content=METRICS.export_prometheus(), media_type="text/plain; version=0.0.4")
