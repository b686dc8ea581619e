from fastapi import Depends, FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from marketplace.api.appointments import router as appointments_router
from marketplace.api.auth import router as auth_router
from marketplace.api.categories import router as categories_router
from marketplace.api.complaints import router as complaints_router
from marketplace.api.notifications import router as notifications_router
from marketplace.api.providers import router as providers_router
from marketplace.api.quality import router as quality_router
from marketplace.api.reviews import router as reviews_router
from marketplace.api.users import router as users_router
from marketplace.errors import register_error_handlers
from marketplace.logging import configure_logging
from marketplace.observability import ObservabilityMiddleware
from marketplace.services.auth_dependencies import require_user_auth

app = FastAPI(title="Service Marketplace API")

configure_logging()
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, prefix="/api", dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(auth_router)
_include_api_router(categories_router)
_include_api_router(providers_router)
_include_api_router(reviews_router)
_include_api_router(appointments_router, dependencies=[Depends(require_user_auth)])
_include_api_router(complaints_router, dependencies=[Depends(require_user_auth)])
_include_api_router(notifications_router, dependencies=[Depends(require_user_auth)])
_include_api_router(quality_router, dependencies=[Depends(require_user_auth)])
_include_api_router(users_router, dependencies=[Depends(require_user_auth)])


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
