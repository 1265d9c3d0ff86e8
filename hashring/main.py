import logging
from typing import Optional

from fastapi import FastAPI, HTTPException

from .analysis import compare_sharding
from .config import settings
from .errors import (
    FailedPreconditionError,
    HashRingError,
    InvalidArgumentError,
    OutOfRangeError,
)
from .hashing import ring_hash
from .models import DistributionReport, DistributionRequest, RingSummary, RouteResult
from .ring import HashRing

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Hash Ring Router",
    version="0.1.0",
    description="Consistent hashing ring exposed as a read-only routing service.",
)

ring = HashRing(settings.nodes, virtual_nodes=settings.virtual_nodes)
logger.info(
    "Ring ready with %d nodes and %d positions", ring.node_count, len(ring)
)


def _http_error(exc: HashRingError) -> HTTPException:
    if isinstance(exc, (InvalidArgumentError, OutOfRangeError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, FailedPreconditionError):
        return HTTPException(status_code=409, detail=str(exc))
    logger.error("Ring error: %s", exc)
    return HTTPException(status_code=500, detail="Internal ring error")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/ring", response_model=RingSummary)
async def ring_summary() -> RingSummary:
    return RingSummary(
        virtual_nodes=ring.virtual_nodes,
        nodes=ring.nodes,
        positions=len(ring),
        ownership=ring.ownership(),
    )


@app.get("/route/{key}", response_model=RouteResult)
async def route(key: str, replicas: Optional[int] = None) -> RouteResult:
    wanted = settings.replica_count if replicas is None else replicas
    try:
        if replicas is None:
            # clamp the configured default to what the ring can serve
            wanted = max(1, min(wanted, ring.node_count))
        nodes = ring.find_nodes_for(key, wanted)
        position = ring_hash(key)
    except HashRingError as exc:
        raise _http_error(exc) from exc
    return RouteResult(
        key=key,
        position=position,
        primary=nodes[0],
        replicas=nodes[1:],
        degraded=len(nodes) < wanted,
    )


@app.post("/ring/distribution", response_model=DistributionReport)
async def distribution(request: DistributionRequest) -> DistributionReport:
    try:
        report = compare_sharding(ring, request.keys, remove=request.remove)
    except HashRingError as exc:
        raise _http_error(exc) from exc
    return DistributionReport(**report)
