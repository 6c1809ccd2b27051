from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from functools import partial
import logging

from infra_monitor import __version__
from infra_monitor.api.v1 import infrastructure, system
from infra_monitor.config import settings
from infra_monitor.middleware import MetricsMiddleware
from infra_monitor.models.common.responses import ErrorResponse, ErrorDetail
from infra_monitor.providers.config import load_provider_configs
from infra_monitor.providers.exceptions import ConfigError
from infra_monitor.services.aggregator import InfrastructureAggregator
from infra_monitor.services.registry import ProviderRegistry

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


def build_aggregator() -> InfrastructureAggregator:
    """Wire the registry to the configured provider config files."""
    loader = partial(
        load_provider_configs,
        settings.INFRASTRUCTURE_CONFIG_PATH,
        settings.LEGACY_PROXMOX_CONFIG_PATH
    )
    return InfrastructureAggregator(ProviderRegistry(loader, settings))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Unified Infrastructure Monitor {__version__} - Starting up")
    logger.info(f"Provider config: {settings.INFRASTRUCTURE_CONFIG_PATH}")
    app.state.aggregator = build_aggregator()
    yield
    await app.state.aggregator.registry.close()
    logger.info("Application shutdown")

app = FastAPI(
    title="Unified Infrastructure Monitor",
    description="Live status of Proxmox, Kubernetes and OpenStack infrastructure in one model",
    version=__version__,
    lifespan=lifespan
)

# ============================================================================
# Middleware
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(MetricsMiddleware)

# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ConfigError)
async def config_exception_handler(request: Request, exc: ConfigError):
    logger.error(f"Provider configuration error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=ErrorResponse(error=ErrorDetail(code="CONFIG_ERROR", message=str(exc))).model_dump(mode='json')
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(error=ErrorDetail(code="VALIDATION_ERROR", message=str(exc))).model_dump(mode='json')
    )

# ============================================================================
# API v1 Routers
# ============================================================================

app.include_router(infrastructure.router, prefix="/api/v1", tags=["Infrastructure"])
app.include_router(system.router, prefix="/api/v1", tags=["System"])

# ============================================================================
# Root Endpoint
# ============================================================================

@app.get("/")
def read_root():
    return {
        "message": "Unified Infrastructure Monitor",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "clusters": "/api/v1/infrastructure?provider={proxmox|kubernetes|openstack}",
            "providers": "/api/v1/infrastructure/list",
            "cluster": "/api/v1/infrastructure/cluster/{cluster_name}",
            "node": "/api/v1/infrastructure/cluster/{cluster_name}/node/{node_name}",
            "workloads": "/api/v1/infrastructure/cluster/{cluster_name}/node/{node_name}/workloads",
            "health": "/api/v1/system/health",
            "metrics": "/api/v1/system/metrics"
        }
    }
