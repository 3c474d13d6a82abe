import os, sys, base64, threading, uuid, time, logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple
from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field, ValidationError
from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
sys.path.insert(0, REPO_ROOT)

from catalog.loaders import list_patterns, load_catalog_pattern, load_catalog_templates
from catalog.render_svg import render_layout_svg
from evaluation.validators import validate_layout
from Generate.constants import GRID_DEFAULT, LAYOUT_SCALE_DEFAULT
from Generate.layout_model import LayoutModel, UnknownRoomError
from Generate.orchestrator import generate_layout
from Generate.params import Pattern, TemplateLibrary, Wall
from geometry.exporters import export_layout
from geometry.kernel import Vec2


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("layout_api")

# Simple API key auth
API_KEYS = set(filter(None, os.environ.get("API_KEYS", "testkey").split(",")))


def _get_api_key(request: Request) -> str:
    api_key = request.headers.get("X-API-Key")
    if not api_key or api_key not in API_KEYS:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Invalid API key"},
        )
    return api_key


# Prometheus metrics
PROM_REGISTRY = CollectorRegistry()
REQUEST_COUNT = Counter(
    "request_total", "Total HTTP requests", ["method", "endpoint", "http_status"],
    registry=PROM_REGISTRY,
)
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Latency of HTTP requests", ["endpoint"],
    registry=PROM_REGISTRY,
)
ERROR_COUNT = Counter(
    "request_errors_total", "Total HTTP errors",
    registry=PROM_REGISTRY,
)
ROOMS_PLACED = Histogram(
    "layout_rooms_placed", "Rooms placed per generated layout",
    buckets=(1, 2, 4, 8, 16, 32, 64),
    registry=PROM_REGISTRY,
)


class Metadata(BaseModel):
    processing_time: float


class GenerateRequest(BaseModel):
    pattern: Optional[Pattern] = None
    pattern_id: Optional[str] = None
    templates: Optional[TemplateLibrary] = None
    variants: int = Field(default=1, ge=1, le=32)
    seed: Optional[int] = None
    include_optional: bool = True
    grid_step: float = Field(default=GRID_DEFAULT, gt=0)
    layout_scale: float = Field(default=LAYOUT_SCALE_DEFAULT, gt=0)


class GenerateResponse(BaseModel):
    layout_id: str
    layout: Dict
    meta: Dict
    variants: List[Dict]
    issues: List[str]
    svg_data_url: str
    metadata: Metadata


class LayoutResponse(BaseModel):
    layout_id: str
    layout: Dict
    meta: Dict
    issues: List[str]
    metadata: Metadata


class PositionIn(BaseModel):
    x: float
    z: float


class MoveIn(BaseModel):
    dx: int = 0
    dz: int = 0


class RoomEdit(BaseModel):
    pos: Optional[PositionIn] = None
    rotate: Optional[int] = None
    move: Optional[MoveIn] = None
    turn: Optional[int] = Field(default=None, description="Quarter turns to add")


class DoorPlacement(BaseModel):
    wall: Wall
    x: float
    z: float
    width: Optional[float] = Field(default=None, gt=0)


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None
    metadata: Metadata


app = FastAPI(title="Apartment Layout API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.perf_counter()
    request.state.start_time = start_time
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as exc:
        ERROR_COUNT.inc()
        logger.exception("Unhandled exception during request: %s", exc)
        raise
    finally:
        duration = time.perf_counter() - start_time
        endpoint = request.url.path
        REQUEST_COUNT.labels(request.method, endpoint, status_code).inc()
        REQUEST_LATENCY.labels(endpoint).observe(duration)
        logger.info(
            "%s %s -> %s in %.3fs",
            request.method,
            endpoint,
            status_code,
            duration,
        )
    return response


# Layout sessions. Every mutate-then-rebuild runs under the lock.
_lock = threading.Lock()
# least recently used sessions are dropped beyond MAX_LAYOUTS
MAX_LAYOUTS = int(os.environ.get("MAX_LAYOUTS", "256"))
_layouts: "OrderedDict[str, Tuple[LayoutModel, Optional[str]]]" = OrderedDict()

# simple in-memory rate limiter: requests per API key per minute
RATE_LIMIT = int(os.environ.get("RATE_LIMIT", "60"))
_WINDOW_SECONDS = 60
_request_counts: Dict[str, Tuple[float, int]] = {}


def _check_rate_limit(api_key: str) -> None:
    now = time.time()
    window_start, count = _request_counts.get(api_key, (now, 0))
    if now - window_start >= _WINDOW_SECONDS:
        window_start, count = now, 0
    if count >= RATE_LIMIT:
        raise HTTPException(
            status_code=429,
            detail={"code": "rate_limit_exceeded", "message": "Too many requests"},
        )
    _request_counts[api_key] = (window_start, count + 1)


def _elapsed(request: Request) -> float:
    return time.perf_counter() - getattr(request.state, "start_time", time.perf_counter())


def svg_to_data_url(svg_text: str) -> str:
    b64 = base64.b64encode(svg_text.encode("utf-8")).decode("utf-8")
    return f"data:image/svg+xml;base64,{b64}"


def _session(layout_id: str) -> Tuple[LayoutModel, Optional[str]]:
    entry = _layouts.get(layout_id)
    if entry is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Layout not found"},
        )
    _layouts.move_to_end(layout_id)
    return entry


def _store(layout_id: str, model: LayoutModel, pattern_id: Optional[str]) -> None:
    _layouts[layout_id] = (model, pattern_id)
    while len(_layouts) > MAX_LAYOUTS:
        dropped, _ = _layouts.popitem(last=False)
        logger.info("Evicted layout session %s", dropped)


def _layout_response(request: Request, layout_id: str, model: LayoutModel, pattern_id: Optional[str]) -> LayoutResponse:
    data = export_layout(model, pattern_id=pattern_id)
    return LayoutResponse(
        layout_id=layout_id,
        layout=data["layout"],
        meta=data["meta"],
        issues=validate_layout(model),
        metadata=Metadata(processing_time=_elapsed(request)),
    )


@app.get("/health")
def health():
    return {"ok": True}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning("HTTPException %s: %s", exc.status_code, exc.detail)
    detail = exc.detail
    if isinstance(detail, dict):
        content = dict(detail)
    else:
        content = {"code": "error", "message": str(detail)}
    content["metadata"] = {"processing_time": _elapsed(request)}
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_error",
            "message": "Internal server error",
            "metadata": {"processing_time": _elapsed(request)},
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error: %s", exc)
    return JSONResponse(
        status_code=422,
        content={
            "code": "validation_error",
            "message": "Invalid request",
            "details": jsonable_encoder(exc.errors()),
            "metadata": {"processing_time": _elapsed(request)},
        },
    )


@app.get("/metrics")
def metrics():
    return Response(generate_latest(PROM_REGISTRY), media_type=CONTENT_TYPE_LATEST)


@app.get("/patterns", responses={401: {"model": ErrorResponse}})
def patterns(api_key: str = Depends(_get_api_key)):
    return {"patterns": list_patterns()}


@app.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
)
def generate(
    request: Request,
    req: GenerateRequest,
    api_key: str = Depends(_get_api_key),
):
    _check_rate_limit(api_key)

    pattern = req.pattern
    if pattern is None:
        if not req.pattern_id:
            raise HTTPException(
                status_code=422,
                detail={"code": "validation_error", "message": "Provide pattern or pattern_id"},
            )
        try:
            pattern = load_catalog_pattern(req.pattern_id)
        except FileNotFoundError:
            raise HTTPException(
                status_code=404,
                detail={"code": "not_found", "message": f"Pattern {req.pattern_id} not found"},
            )
        except ValidationError as e:
            raise HTTPException(
                status_code=422,
                detail={"code": "validation_error", "message": "Invalid pattern", "details": e.errors()},
            )
    templates = req.templates.root if req.templates is not None else load_catalog_templates()

    model, info = generate_layout(
        pattern,
        templates,
        variants=req.variants,
        include_optional=req.include_optional,
        grid_step=req.grid_step,
        layout_scale=req.layout_scale,
        seed=req.seed,
    )
    ROOMS_PLACED.observe(len(model.rooms))

    layout_id = uuid.uuid4().hex
    with _lock:
        _store(layout_id, model, pattern.id)
    svg = render_layout_svg(info["layout"]).tostring()
    return GenerateResponse(
        layout_id=layout_id,
        layout=info["layout"]["layout"],
        meta=info["layout"]["meta"],
        variants=info["variants"],
        issues=validate_layout(model),
        svg_data_url=svg_to_data_url(svg),
        metadata=Metadata(processing_time=_elapsed(request)),
    )


@app.get(
    "/layouts/{layout_id}",
    response_model=LayoutResponse,
    responses={404: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def get_layout(request: Request, layout_id: str, api_key: str = Depends(_get_api_key)):
    with _lock:
        model, pattern_id = _session(layout_id)
        return _layout_response(request, layout_id, model, pattern_id)


@app.patch(
    "/layouts/{layout_id}/rooms/{slot_id}",
    response_model=LayoutResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def edit_room(
    request: Request,
    layout_id: str,
    slot_id: str,
    edit: RoomEdit,
    api_key: str = Depends(_get_api_key),
):
    with _lock:
        model, pattern_id = _session(layout_id)
        try:
            if edit.pos is not None or edit.rotate is not None:
                pos = Vec2(edit.pos.x, edit.pos.z) if edit.pos is not None else None
                model.set_room_pose(slot_id, pos=pos, rotate=edit.rotate)
            if edit.move is not None:
                model.move_room(slot_id, edit.move.dx, edit.move.dz)
            if edit.turn:
                model.rotate_room(slot_id, edit.turn)
        except UnknownRoomError:
            raise HTTPException(
                status_code=404,
                detail={"code": "not_found", "message": f"Room {slot_id} not found"},
            )
        except ValueError as e:
            raise HTTPException(
                status_code=422,
                detail={"code": "validation_error", "message": str(e)},
            )
        return _layout_response(request, layout_id, model, pattern_id)


@app.post(
    "/layouts/{layout_id}/rooms/{slot_id}/doors",
    response_model=LayoutResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def add_door(
    request: Request,
    layout_id: str,
    slot_id: str,
    door: DoorPlacement,
    api_key: str = Depends(_get_api_key),
):
    with _lock:
        model, pattern_id = _session(layout_id)
        try:
            changed = model.place_door(slot_id, door.wall, door.x, door.z, door.width)
        except UnknownRoomError:
            raise HTTPException(
                status_code=404,
                detail={"code": "not_found", "message": f"Room {slot_id} not found"},
            )
        if not changed:
            raise HTTPException(
                status_code=409,
                detail={"code": "door_rejected", "message": "Wall too short or door already present"},
            )
        logger.info("Placed door on %s for %s", door.wall.value, ", ".join(changed))
        return _layout_response(request, layout_id, model, pattern_id)
