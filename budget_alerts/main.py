import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL, get_cors_origins
from .controllers import allocation, budgets, expenses, finances, trackers
from .database import init_db
from .errors import InputError, StoreError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    await init_db()
    yield


app = FastAPI(title="Budget Alerts API", lifespan=lifespan)

# Configure CORS - explicit origins required when allow_credentials=True
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store unavailable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Budget data is temporarily unavailable"})


# Include routers
app.include_router(budgets.router, prefix="/api/budgets", tags=["budgets"])
app.include_router(expenses.router, prefix="/api/expenses", tags=["expenses"])
app.include_router(allocation.router, prefix="/api/allocation", tags=["allocation"])
app.include_router(finances.router, prefix="/api", tags=["finances"])
app.include_router(trackers.router, prefix="/api/trackers", tags=["maintenance"])
