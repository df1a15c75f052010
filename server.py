"""
FastAPI Justified Layout Application
A web API that computes justified photo grid layouts for rendering clients
"""

import json
import logging
import time
import uuid
from collections import defaultdict
from dataclasses import asdict, replace
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Dict, List, Optional, Sequence

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, field_validator
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from config import AppSettings
from justified_layout import (
    DEFAULT_BREAKPOINTS,
    Breakpoint,
    LayoutOptions,
    PhotoInput,
    Row,
    analyze_layout,
    compute_justified_layout,
    place_rows,
)


def _configure_logging():
    handlers = [logging.StreamHandler()]
    if settings.log_to_file:
        handlers.append(RotatingFileHandler(
            settings.log_file_path,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count
        ))
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    return logging.getLogger(__name__)

# Load settings
settings = AppSettings()

# Configure logging (after settings)
logger = _configure_logging()

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Compute justified photo grid layouts",
    version=settings.app_version
)
# Prometheus metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)
REQUEST_LATENCY = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency (seconds)',
    ['method', 'path']
)
LAYOUT_DURATION = Histogram(
    'layout_compute_duration_seconds',
    'Time spent computing one justified layout (seconds)'
)
LAYOUT_PHOTOS = Histogram(
    'layout_photos',
    'Photos per computed layout',
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000)
)
LAYOUT_ROWS = Histogram(
    'layout_rows',
    'Rows per computed layout',
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 500, 1000)
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Pydantic models
class PhotoModel(BaseModel):
    id: str = Field(..., min_length=1)
    url: str = Field(default="")
    # Missing or non-positive dimensions are laid out as squares
    width: Optional[float] = None
    height: Optional[float] = None

class LayoutOptionsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    min_photos_per_row: Optional[int] = Field(default=None, ge=1, le=100, alias="minPhotosPerRow")
    max_photos_per_row: Optional[int] = Field(default=None, ge=1, le=100, alias="maxPhotosPerRow")
    target_row_height: Optional[float] = Field(default=None, gt=0, le=10000, alias="targetRowHeight")
    max_row_height: Optional[float] = Field(default=None, gt=0, le=10000, alias="maxRowHeight")
    gap: Optional[float] = Field(default=None, ge=0, le=100)
    shape_variety: Optional[bool] = Field(default=None, alias="shapeVariety")

class PhotoBatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    photos: List[PhotoModel] = Field(default_factory=list)

    @field_validator('photos')
    @classmethod
    def validate_photo_count(cls, v):
        if len(v) > settings.max_photos_per_request:
            raise ValueError(f'Too many photos. Maximum {settings.max_photos_per_request} allowed')
        return v

class JustifiedLayoutRequest(PhotoBatch):
    # Non-positive widths are accepted and produce an empty layout
    container_width: float = Field(..., le=100000, alias="containerWidth")
    options: Optional[LayoutOptionsModel] = None
    include_positions: bool = Field(default=False, alias="includePositions")

class BreakpointModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    container_width: float = Field(..., le=100000, alias="containerWidth")
    options: Optional[LayoutOptionsModel] = None

class ResponsiveLayoutRequest(PhotoBatch):
    breakpoints: Optional[List[BreakpointModel]] = Field(default=None, min_length=1)

# Public response models
class LayoutItemModel(BaseModel):
    photo_id: str
    url: str
    aspect_ratio: float
    display_width: float
    display_height: float

class RowModel(BaseModel):
    items: List[LayoutItemModel]
    height: float

class PlacementModel(BaseModel):
    photo_id: str
    row: int
    x: float
    y: float
    width: float
    height: float

class JustifiedLayoutResponse(BaseModel):
    rows: List[RowModel]
    row_count: int
    photo_count: int
    total_height: float
    placements: Optional[List[PlacementModel]] = None

class BreakpointLayoutModel(BaseModel):
    container_width: float
    rows: List[RowModel]

class ResponsiveLayoutResponse(BaseModel):
    layouts: Dict[str, BreakpointLayoutModel]

# Request -> engine conversion
def _to_photo_inputs(photos: Sequence[PhotoModel]) -> List[PhotoInput]:
    return [PhotoInput(id=p.id, url=p.url, width=p.width, height=p.height) for p in photos]

def _to_layout_options(model: Optional[LayoutOptionsModel]) -> LayoutOptions:
    """Overlay request options on the configured defaults."""
    defaults = settings.layout_defaults()
    if model is None:
        return defaults
    return replace(defaults, **model.model_dump(exclude_none=True))

def _row_models(rows: Sequence[Row]) -> List[RowModel]:
    return [RowModel.model_validate(asdict(row)) for row in rows]

def _compute_layout(photos: List[PhotoInput], container_width: float, options: LayoutOptions) -> List[Row]:
    start = time.perf_counter()
    rows = compute_justified_layout(photos, container_width, options)
    LAYOUT_DURATION.observe(time.perf_counter() - start)
    LAYOUT_PHOTOS.observe(len(photos))
    LAYOUT_ROWS.observe(len(rows))
    return rows


# Rate limiting (simple in-memory implementation)
rate_limit_store = defaultdict(list)
RATE_LIMIT_REQUESTS = settings.rate_limit_requests  # requests per window
RATE_LIMIT_WINDOW = settings.rate_limit_window_seconds  # seconds
_last_rate_limit_prune = 0.0

def _prune_rate_limit_store(now: float) -> None:
    """Drop clients with no request inside the window, at most once per window."""
    global _last_rate_limit_prune
    if now - _last_rate_limit_prune < RATE_LIMIT_WINDOW:
        return
    _last_rate_limit_prune = now
    stale = [
        ip for ip, times in rate_limit_store.items()
        if not times or now - times[-1] >= RATE_LIMIT_WINDOW
    ]
    for ip in stale:
        del rate_limit_store[ip]

def check_rate_limit(client_ip: str) -> bool:
    """Simple rate limiting check"""
    now = time.time()
    _prune_rate_limit_store(now)
    # Clean old requests
    rate_limit_store[client_ip] = [
        req_time for req_time in rate_limit_store[client_ip]
        if now - req_time < RATE_LIMIT_WINDOW
    ]

    if len(rate_limit_store[client_ip]) >= RATE_LIMIT_REQUESTS:
        return False

    rate_limit_store[client_ip].append(now)
    return True


# API Endpoints

@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "endpoints": {
            "justified_layout": "/api/layout/justified",
            "responsive_layout": "/api/layout/responsive",
            "analyze_layout": "/api/layout/analyze",
            "health": "/health",
            "metrics": "/metrics"
        }
    }

@app.post("/api/layout/justified", response_model=JustifiedLayoutResponse)
async def justified_layout(request: JustifiedLayoutRequest):
    """Compute justified rows for an ordered list of photos"""
    options = _to_layout_options(request.options)
    logger.info(f"Layout request: {len(request.photos)} photos, container_width={request.container_width}, min={options.min_photos_per_row}, max={options.max_photos_per_row}, target={options.target_row_height}")

    try:
        rows = _compute_layout(_to_photo_inputs(request.photos), request.container_width, options)
        placements, total_height = place_rows(rows, options.gap)

        return JustifiedLayoutResponse(
            rows=_row_models(rows),
            row_count=len(rows),
            photo_count=len(request.photos),
            total_height=total_height,
            placements=[PlacementModel.model_validate(asdict(p)) for p in placements] if request.include_positions else None,
        )

    except Exception as e:
        logger.error(f"Layout computation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Layout computation failed: {str(e)}")

@app.post("/api/layout/responsive", response_model=ResponsiveLayoutResponse)
async def responsive_layout(request: ResponsiveLayoutRequest):
    """
    Compute one layout per breakpoint (mobile/tablet/desktop by default)

    Clients render the layout matching their current viewport, so a resize
    across breakpoints needs no new request.
    """
    if request.breakpoints:
        breakpoints = [
            Breakpoint(bp.name, bp.container_width, _to_layout_options(bp.options))
            for bp in request.breakpoints
        ]
    else:
        breakpoints = list(DEFAULT_BREAKPOINTS)
    logger.info(f"Responsive layout request: {len(request.photos)} photos, breakpoints={[bp.name for bp in breakpoints]}")

    try:
        photos = _to_photo_inputs(request.photos)
        layouts = {}
        for bp in breakpoints:
            rows = _compute_layout(photos, bp.container_width, bp.options)
            layouts[bp.name] = BreakpointLayoutModel(container_width=bp.container_width, rows=_row_models(rows))

        return ResponsiveLayoutResponse(layouts=layouts)

    except Exception as e:
        logger.error(f"Responsive layout failed: {e}")
        raise HTTPException(status_code=500, detail=f"Responsive layout failed: {str(e)}")

@app.post("/api/layout/analyze")
async def analyze_justified_layout(request: JustifiedLayoutRequest):
    """
    Analyze how the justified layout algorithm would split the photos into rows

    Returns row distribution, height statistics and balance metrics so the
    option values can be tuned without rendering anything.
    """
    options = _to_layout_options(request.options)
    try:
        rows = _compute_layout(_to_photo_inputs(request.photos), request.container_width, options)
        _, total_height = place_rows(rows, options.gap)
        metrics = analyze_layout(rows, request.container_width, options.gap)

        return {
            "success": True,
            "analysis": {
                "container": {
                    "width": request.container_width,
                    "total_height": round(total_height, 2)
                },
                "options": asdict(options),
                **metrics,
                "balance_quality": "smooth" if metrics["max_adjacent_difference"] <= 1 else "uneven"
            },
            "message": "Layout analysis completed successfully"
        }

    except Exception as e:
        logger.error(f"Layout analysis failed: {e}")
        raise HTTPException(status_code=500, detail=f"Layout analysis failed: {str(e)}")

def _log_json(event: str, **kwargs):
    try:
        record = {"event": event, **kwargs}
        logger.info(json.dumps(record, default=str))
    except (TypeError, ValueError):
        # Fallback to plain logging if JSON serialization fails
        logger.info(f"{event} | {kwargs}")


# Request logging + Request ID middleware
@app.middleware("http")
async def log_requests(request, call_next):
    # Correlation/Request ID
    req_id = request.headers.get("X-Request-ID") or request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.request_id = req_id

    # Client IP for rate limiting
    client_ip = request.client.host if request.client else "unknown"

    # Rate limit check
    if not check_rate_limit(client_ip):
        _log_json(
            "rate_limit_exceeded",
            request_id=req_id,
            method=request.method,
            path=request.url.path,
            client_ip=client_ip,
        )
        return JSONResponse(
            status_code=429,
            content={"error": "Rate limit exceeded. Please try again later.", "request_id": req_id}
        )

    start_time = datetime.now()
    _log_json(
        "request_start",
        request_id=req_id,
        method=request.method,
        path=request.url.path,
        client_ip=client_ip,
    )

    response = await call_next(request)
    elapsed = (datetime.now() - start_time).total_seconds()
    process_time_ms = elapsed * 1000

    # Add response headers
    response.headers["X-Request-ID"] = req_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    _log_json(
        "request_end",
        request_id=req_id,
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time_ms, 2),
        client_ip=client_ip,
    )

    REQUEST_COUNT.labels(method=request.method, path=request.url.path, status=response.status_code).inc()
    REQUEST_LATENCY.labels(method=request.method, path=request.url.path).observe(elapsed)

    return response


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

def _engine_self_check() -> bool:
    """Lay out a small fixed gallery and confirm every photo is placed once."""
    sample = [PhotoInput(id=f"health-{i}", width=600, height=400) for i in range(6)]
    rows = compute_justified_layout(sample, 1000, settings.layout_defaults())
    placed = [item.photo_id for row in rows for item in row.items]
    return placed == [p.id for p in sample]

# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        engine_ok = _engine_self_check()

        health_status = {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "version": settings.app_version,
            "checks": {
                "engine": {
                    "healthy": engine_ok
                },
                "rate_limiter": {
                    "tracked_clients": len(rate_limit_store),
                    "healthy": True
                }
            }
        }

        # Determine overall health
        all_checks_healthy = all(
            check.get("healthy", False)
            for check in health_status["checks"].values()
        )

        if not all_checks_healthy:
            health_status["status"] = "unhealthy"
            logger.warning("Health check failed", extra={"checks": health_status["checks"]})

        return health_status

    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "timestamp": datetime.now().isoformat(),
            "error": str(e)
        }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
