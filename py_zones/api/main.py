"""FastAPI main application."""

import logging
from typing import Any, Dict, List, Literal, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..config import settings
from ..core.masks import filter_department
from ..core.partition import compute_partition, compute_sub_region_partition
from ..core.points import Facility
from ..core.styling import zone_color

# Configure logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="PAS Zones API",
    description="Voronoi partition of schools into support-zones",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class PartitionRequest(BaseModel):
    """Request to partition a set of schools."""

    facilities: List[Facility] = Field(..., description="Schools with coordinates and labels")
    boundaries: Dict[str, Any] = Field(..., description="GeoJSON boundary document")
    zones: Optional[List[str]] = Field(None, description="Zones in view; all when omitted")
    mode: Literal["global", "sub_region"] = Field("global", description="Engine variant")
    department: Optional[str] = Field(None, description="Keep only this department's boundaries")
    include_masks: bool = Field(False, description="Append the clipping masks to the output")


class ColorResponse(BaseModel):
    zone: str
    color: str


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "PAS Zones API",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/partition")
def partition(request: PartitionRequest):
    """
    Compute the zone polygons of the requested schools.

    Returns a GeoJSON FeatureCollection, empty when fewer than three schools
    qualify.
    """
    if request.boundaries.get("type") not in ("FeatureCollection", "Feature") and \
            "coordinates" not in request.boundaries and "geometries" not in request.boundaries:
        raise HTTPException(status_code=400, detail="boundaries must be a GeoJSON object")

    logger.info(
        "Partition requested",
        mode=request.mode,
        facilities=len(request.facilities),
        zones=len(request.zones) if request.zones is not None else None,
    )

    boundaries = request.boundaries
    if request.department:
        if boundaries.get("type") != "FeatureCollection":
            raise HTTPException(status_code=400, detail="department filter needs a FeatureCollection")
        boundaries = filter_department(boundaries, request.department)

    zone_filter = set(request.zones) if request.zones is not None else None
    if request.mode == "sub_region":
        result = compute_sub_region_partition(request.facilities, boundaries, zone_filter)
    else:
        result = compute_partition(request.facilities, boundaries, zone_filter)

    return result.to_feature_collection(include_masks=request.include_masks)


@app.get("/zones/{label}/color", response_model=ColorResponse)
async def get_zone_color(label: str):
    """Deterministic display color of a zone."""
    return ColorResponse(zone=label, color=zone_color(label))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
