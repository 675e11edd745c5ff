from fastapi import APIRouter, Depends
from fastapi.responses import Response

from graficontrol.business.billing import router as billing_webhook_router
from graficontrol.business.company import router as companies_router
from graficontrol.business.financial import router as financial_router
from graficontrol.business.orders import router as orders_router
from graficontrol.business.quotes import router as quotes_router
from graficontrol.business.subscription import router as subscriptions_router
from graficontrol.core.auth import AuthUser
from graficontrol.core.config import get_settings
from graficontrol.core.rbac import require_roles
from graficontrol.metrics import generate_metrics_payload, metrics_content_type
from graficontrol.platform.errors import NotFoundError
from graficontrol.platform.security.context import Role

router = APIRouter()
router.include_router(companies_router)
router.include_router(subscriptions_router)
router.include_router(orders_router)
router.include_router(quotes_router)
router.include_router(financial_router)
router.include_router(billing_webhook_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/metrics", tags=["system"])
def metrics(user: AuthUser = Depends(require_roles(Role.SUPERADMIN))) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise NotFoundError("not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
