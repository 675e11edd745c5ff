from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from graficontrol.business.billing.webhook import webhook_reconciler
from graficontrol.core.config import get_settings
from graficontrol.core.database import get_db


router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/billing")
async def receive_billing_webhook(request: Request, db: Session = Depends(get_db)) -> dict[str, bool]:
    settings = get_settings()
    # Signatures cover the exact bytes received, so the body is read before any parsing.
    raw_body = await request.body()
    signature = request.headers.get(settings.billing_webhook_signature_header)
    await run_in_threadpool(webhook_reconciler.handle, db, raw_body, signature, settings.billing_webhook_token)
    return {"received": True}
