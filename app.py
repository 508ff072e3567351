import time
import logging
from datetime import datetime
from typing import Any, Dict

import psutil
from fastapi import FastAPI, Request, Depends, HTTPException
from fastapi.responses import JSONResponse

from utils import (
    PROJECTION_REGISTRY, EQUIVALENCE_REGISTRY, process_grouping,
    get_performance_summary
)

from models import (
    GroupRequest, GroupResponse, GroupingParams, PerformanceMetrics,
    RegistryResponse, StatusResponse, ErrorResponse, ContractViolationError
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Lazy Grouping Service")

_started_at = time.time()
_stats: Dict[str, Any] = {"requests_processed": 0}


@app.post("/group", response_model=GroupResponse)
async def group_data(
    request: GroupRequest,
    params: GroupingParams = Depends()
) -> GroupResponse:
    """
    Split the request data into maximal runs of consecutive elements whose
    projected criteria are equivalent.
    """
    if request.projection not in PROJECTION_REGISTRY:
        raise HTTPException(status_code=404, detail=f"Projection not found: {request.projection}")
    if request.equivalence not in EQUIVALENCE_REGISTRY:
        raise HTTPException(status_code=404, detail=f"Equivalence not found: {request.equivalence}")

    try:
        result = process_grouping(
            request.data,
            projection=request.projection,
            projection_arg=request.projection_arg,
            equivalence=request.equivalence,
            reverse=request.reverse,
            max_groups=request.max_groups
        )
    except ContractViolationError:
        raise
    except (TypeError, ValueError) as e:
        logger.warning(f"Rejected projection argument {request.projection_arg!r}: {e}")
        raise HTTPException(status_code=400, detail=f"Invalid projection argument: {str(e)}")

    if "error" in result:
        raise HTTPException(
            status_code=400,
            detail=f"Grouping failed ({result['error_type']}): {result['error']}"
        )

    _stats["requests_processed"] += 1
    logger.info(
        f"Grouped {len(request.data)} elements into {result['group_count']} groupings "
        f"({request.projection}/{request.equivalence})"
    )

    return GroupResponse(
        groups=result["groups"],
        keys=result["keys"],
        group_count=result["group_count"],
        input_size=len(request.data),
        projection=request.projection,
        equivalence=request.equivalence,
        reversed=result["reversed"],
        performance=PerformanceMetrics(**result["performance"]) if params.include_performance else None,
        timestamp=datetime.now()
    )


@app.get("/registry", response_model=RegistryResponse)
async def registry() -> RegistryResponse:
    """List the projections and equivalences requests can name"""
    return RegistryResponse(
        projections=sorted(PROJECTION_REGISTRY),
        equivalences=sorted(EQUIVALENCE_REGISTRY)
    )


@app.get("/status", response_model=StatusResponse)
async def status() -> StatusResponse:
    """Service health, uptime and memory"""
    try:
        memory_mb = psutil.Process().memory_info().rss / 1024 / 1024
    except psutil.Error as e:
        logger.error(f"Failed to read process memory: {e}")
        memory_mb = None

    return StatusResponse(
        status="healthy",
        uptime_seconds=time.time() - _started_at,
        requests_processed=_stats["requests_processed"],
        memory_usage_mb=memory_mb,
        performance_summary=get_performance_summary()
    )


@app.exception_handler(ContractViolationError)
async def contract_violation_handler(request: Request, exc: ContractViolationError):
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=f"Contract violation: {str(exc)}",
            error_type="ContractViolationError",
            timestamp=datetime.now()
        ).model_dump(mode="json")
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
