from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from roadside.config import Settings, load_settings
from roadside.routers import history, mechanics, messages, service_requests, users
from roadside.services.core import DispatchCore, build_core


def _is_wildcard(values: list[str]) -> bool:
    return len(values) == 1 and values[0] == "*"


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = f"Invalid request data: {location}: {first.get('msg', 'malformed input')}"
    return JSONResponse(status_code=400, content={"detail": detail})


def create_app(core: Optional[DispatchCore] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Roadside Dispatch API", version="0.1.0")
    app.state.core = core or build_core(settings)

    allow_any_origin = _is_wildcard(settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        # Browsers reject wildcard CORS with credentials enabled.
        allow_credentials=not allow_any_origin,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if not _is_wildcard(settings.trusted_hosts):
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    app.include_router(users.router, prefix="/api")
    app.include_router(mechanics.router, prefix="/api")
    app.include_router(service_requests.router, prefix="/api")
    app.include_router(history.router, prefix="/api")
    app.include_router(messages.router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/ready")
    def ready():
        current = app.state.core
        return {
            "status": "ready",
            "mechanics": len(current.store.list_providers()),
            "lifecycle_mode": "strict" if current.lifecycle.strict else "permissive",
        }

    return app


app = create_app()
