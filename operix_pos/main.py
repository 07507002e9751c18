# operix_pos/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from operix_pos.core.config import get_settings
from operix_pos.core.erp_client import get_erp_client
from operix_pos.core.errors import PosError

# Routers
from operix_pos.routers.pos import router as pos_router
from operix_pos.routers.permissions import router as permissions_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Nothing to connect eagerly; the ERP client opens lazily.

    Shutdown:
      - Close the shared ERP HTTP client if it was ever created.
    """
    logger.info(f"🔄 Startup: POS engine talking to ERP at {settings.ERP_API_URL}")
    yield
    if get_erp_client.cache_info().currsize:
        await get_erp_client().aclose()
        logger.info("✅ Shutdown: ERP client closed.")


app = FastAPI(
    title=settings.PROJECT_NAME or "Operix POS",
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError) -> JSONResponse:
    """
    Translate engine errors to HTTP, keeping FastAPI's {"detail": ...} shape.
    """
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


# Versioned API prefix, e.g. /api/v1
app.include_router(pos_router, prefix=settings.API_V1_STR)
app.include_router(permissions_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "operix-pos"}
