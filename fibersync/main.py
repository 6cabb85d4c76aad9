# fibersync/main.py
import logging
import os

from dotenv import load_dotenv

# Load .env before anything reads the environment
load_dotenv()

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import health
from .api.billing import main as billing_main_api
from .api.customers import main as customers_main_api
from .api.inventory import main as inventory_main_api
from .api.job_orders import main as job_orders_main_api
from .api.locations import main as locations_main_api
from .api.logs import main as logs_main_api
from .api.network import main as network_main_api
from .api.notifications import main as notifications_main_api
from .api.payments import main as payments_main_api
from .api.plans import main as plans_main_api
from .api.pppoe import main as pppoe_main_api
from .api.radius import main as radius_main_api
from .api.service_orders import main as service_orders_main_api
from .api.settings import main as settings_main_api
from .api.users import main as users_main_api
from .core.bootstrap import bootstrap_system
from .core.limiter import limiter
from .core.users import auth_backend_cookie, auth_backend_jwt, fastapi_users
from .schemas.user import UserRead, UserUpdate

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

APP_ENV = os.getenv("APP_ENV", "development")

app = FastAPI(title="FiberSync", version="1.0.0")


@app.on_event("startup")
def on_startup():
    bootstrap_system()
    logger.info("FiberSync started (%s)", APP_ENV)


# --- Rate limiting (SlowAPI) ---
app.state.limiter = limiter


async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"status": "error", "message": f"Too many requests: {exc.detail}"},
    )


app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)


# --- CORS ---
origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:8000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Trusted hosts ---
allowed_hosts = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)


# --- Security headers ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if APP_ENV == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# --- Error envelopes ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "An unexpected error occurred", "error": str(exc)},
    )


# --- Authentication (fastapi-users) ---
app.include_router(
    fastapi_users.get_auth_router(auth_backend_jwt),
    prefix="/auth/jwt",
    tags=["Auth - JWT"],
)
app.include_router(
    fastapi_users.get_auth_router(auth_backend_cookie),
    prefix="/auth/cookie",
    tags=["Auth - Cookie"],
)
app.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/auth/users",
    tags=["Auth - Current User"],
)

# --- Domain API routers ---
app.include_router(health.router, prefix="/api")
app.include_router(payments_main_api.router, prefix="/api", tags=["Payments"])
app.include_router(customers_main_api.router, prefix="/api", tags=["Customers"])
app.include_router(billing_main_api.router, prefix="/api", tags=["Billing"])
app.include_router(service_orders_main_api.router, prefix="/api", tags=["Service Orders"])
app.include_router(job_orders_main_api.router, prefix="/api", tags=["Job Orders"])
app.include_router(plans_main_api.router, prefix="/api", tags=["Plans"])
app.include_router(network_main_api.router, prefix="/api", tags=["Network"])
app.include_router(locations_main_api.router, prefix="/api", tags=["Locations"])
app.include_router(inventory_main_api.router, prefix="/api", tags=["Inventory"])
app.include_router(radius_main_api.router, prefix="/api", tags=["RADIUS"])
app.include_router(notifications_main_api.router, prefix="/api", tags=["Notifications"])
app.include_router(logs_main_api.router, prefix="/api", tags=["Logs"])
app.include_router(pppoe_main_api.router, prefix="/api", tags=["PPPoE"])
app.include_router(users_main_api.router, prefix="/api", tags=["Users"])
app.include_router(settings_main_api.router, prefix="/api", tags=["Settings"])
