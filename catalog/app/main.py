import os
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, APIRouter, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from . import rules
from .db import init_db
from .logging_config import configure_logging
from .repository import ProductRepository, get_repository
from .schemas import (
    ErrorResponse, MessageResponse, ProductCreate, ProductListResponse, ProductOut,
    ProductResponse, ProductUpdate, ValidationErrorResponse,
)
from .validation import RequestValidationFailed, validate

APP_NAME = "catalog"
configure_logging()
logger = structlog.get_logger(APP_NAME)

# Optional prefix in front of /api/products. Leave empty ("") if your Gateway strips it.
API_PREFIX = os.getenv("API_PREFIX", "").strip()
if API_PREFIX and not API_PREFIX.startswith("/"):
    API_PREFIX = "/" + API_PREFIX
API_PREFIX = API_PREFIX.rstrip("/")

# The only origin allowed to call the API from a browser
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")

NOT_FOUND = "Product not found"

# ---- Startup: ensure schema + tables exist (idempotent) ----
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield

app = FastAPI(title=APP_NAME, description="REST API for the product catalog", lifespan=lifespan)
router = APIRouter(prefix=f"{API_PREFIX}/api/products", tags=["Products"])


class ProductNotFound(Exception):
    def __init__(self, pid: int):
        super().__init__(f"product {pid} not found")
        self.pid = pid


@app.exception_handler(RequestValidationFailed)
async def validation_failed_handler(request: Request, exc: RequestValidationFailed):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": exc.errors})


@app.exception_handler(ProductNotFound)
async def not_found_handler(request: Request, exc: ProductNotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": NOT_FOUND})


# ---- CORS: strict match against the configured frontend ----
@app.middleware("http")
async def origin_guard(request: Request, call_next):
    origin = request.headers.get("origin")
    same_origin = str(request.base_url).rstrip("/")
    if origin is not None and origin.rstrip("/") not in (FRONTEND_URL, same_origin):
        logger.warning("cors_rejected", origin=origin, path=request.url.path)
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": "Origin not allowed by CORS"})
    return await call_next(request)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)

# ---- Prometheus metrics + request log ----
REQS = Counter("http_requests_total", "Total HTTP requests", ["service", "path", "method", "status"])
LAT  = Histogram("http_request_duration_seconds", "Request latency", ["service", "path", "method"])

@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed = time.time() - start
    # Label by route template so each product id does not add a new series
    route = request.scope.get("route")
    path = route.path if route is not None else request.url.path
    REQS.labels(APP_NAME, path, request.method, response.status_code).inc()
    LAT.labels(APP_NAME, path, request.method).observe(elapsed)
    logger.info(
        "request_finished",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(elapsed * 1000, 2),
    )
    return response

@app.get("/health", response_class=PlainTextResponse)
def health():
    return "ok"

@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# ---- OpenAPI helpers: bodies and the id are read by the rule chains ----
ID_PARAMETER = {
    "in": "path",
    "name": "id",
    "required": True,
    "description": "The ID of the product",
    "schema": {"type": "integer", "minimum": 1},
}

def _json_body(model):
    return {"required": True, "content": {"application/json": {"schema": model.model_json_schema()}}}

BAD_REQUEST = {400: {"model": ValidationErrorResponse, "description": "Bad Request - Invalid input data"}}
MISSING = {404: {"model": ErrorResponse, "description": "Product Not Found"}}


def _find(repo: ProductRepository, pid: int):
    p = repo.get(pid)
    if not p:
        raise ProductNotFound(pid)
    return p


@router.get("", response_model=ProductListResponse, summary="Get a list of products")
def list_products(repo: ProductRepository = Depends(get_repository)):
    rows = repo.list()
    return ProductListResponse(data=[ProductOut.model_validate(p) for p in rows])

@router.get(
    "/{id}",
    response_model=ProductResponse,
    summary="Get a product by ID",
    responses={**BAD_REQUEST, **MISSING},
    openapi_extra={"parameters": [ID_PARAMETER]},
)
def get_product(data: dict = Depends(validate(*rules.BY_ID)), repo: ProductRepository = Depends(get_repository)):
    p = _find(repo, data["id"])
    return ProductResponse(data=ProductOut.model_validate(p))

@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    responses=BAD_REQUEST,
    openapi_extra={"requestBody": _json_body(ProductCreate)},
)
def create_product(data: dict = Depends(validate(*rules.CREATE)), repo: ProductRepository = Depends(get_repository)):
    # availability is not accepted on create; the column default applies
    p = repo.create(name=data["name"], price=data["price"])
    return ProductResponse(data=ProductOut.model_validate(p))

@router.put(
    "/{id}",
    response_model=ProductResponse,
    summary="Update a product with user input",
    responses={**BAD_REQUEST, **MISSING},
    openapi_extra={"parameters": [ID_PARAMETER], "requestBody": _json_body(ProductUpdate)},
)
def update_product(data: dict = Depends(validate(*rules.UPDATE)), repo: ProductRepository = Depends(get_repository)):
    p = _find(repo, data["id"])
    p.name = data["name"]
    p.price = data["price"]
    p.availability = data["availability"]
    repo.save(p)
    return ProductResponse(data=ProductOut.model_validate(p))

@router.patch(
    "/{id}",
    response_model=ProductResponse,
    summary="Toggle product availability",
    responses={**BAD_REQUEST, **MISSING},
    openapi_extra={"parameters": [ID_PARAMETER]},
)
def update_availability(data: dict = Depends(validate(*rules.BY_ID)), repo: ProductRepository = Depends(get_repository)):
    p = _find(repo, data["id"])
    p.availability = not p.availability
    repo.save(p)
    return ProductResponse(data=ProductOut.model_validate(p))

@router.delete(
    "/{id}",
    response_model=MessageResponse,
    summary="Delete a product by ID",
    responses={**BAD_REQUEST, **MISSING},
    openapi_extra={"parameters": [ID_PARAMETER]},
)
def delete_product(data: dict = Depends(validate(*rules.BY_ID)), repo: ProductRepository = Depends(get_repository)):
    p = _find(repo, data["id"])
    repo.delete(p)
    return MessageResponse(data="Product deleted")

app.include_router(router)
