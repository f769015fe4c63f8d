import logging
import uuid

from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import Response

from .errors import register_error_handlers
from .logging import setup_logging
from .routers.admin import router as admin_router
from .routers.chat import router as chat_router
from .routers.deals import router as deals_router
from .routers.favorites import router as favorites_router
from .routers.health import router as health_router
from .routers.leads import router as leads_router
from .routers.notifications import router as notifications_router
from .routers.properties import router as properties_router
from .routers.reviews import router as reviews_router
from .settings import settings

setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

app = FastAPI(title="Rentloop API", version="0.1.0")
register_error_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:  # type: ignore[override]
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    logger.debug(
        "%s %s -> %s", request.method, request.url.path, response.status_code, extra={"request_id": request_id}
    )
    return response


app.include_router(health_router)
app.include_router(properties_router)
app.include_router(deals_router)
app.include_router(leads_router)
app.include_router(chat_router)
app.include_router(notifications_router)
app.include_router(reviews_router)
app.include_router(favorites_router)
app.include_router(admin_router)
