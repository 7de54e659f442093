import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from . import models  # noqa: F401  registers tables on Base.metadata
from .config import settings
from .database import Base, engine
from .routes import auth as auth_routes
from .routes import deliverers as deliverers_routes
from .routes import halls as halls_routes
from .routes import handshakes as handshakes_routes
from .routes import users as users_routes
from .schemas import format_errors

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    session_cookie="dormdash_session",
)
if settings.cors_origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def on_startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    Base.metadata.create_all(bind=engine)
    logger.info("%s ready", settings.app_name)


def _validation_message(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    if not loc:
        return "Request body is required"
    field = loc[-1]
    if error.get("type") in ("missing", "string_type", "string_too_short"):
        return f"{field} (string) is required"
    return f"{field}: {error.get('msg')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = _validation_message(errors[0]) if errors else "Invalid request"
    return JSONResponse(
        {
            "detail": detail,
            "errors": [item.model_dump() for item in format_errors(exc)],
        },
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled application error", exc_info=exc)
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(deliverers_routes.router)
app.include_router(handshakes_routes.router)
app.include_router(users_routes.router)
app.include_router(auth_routes.router)
app.include_router(halls_routes.router)
