"""
Paystack webhook endpoint
"""

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from ..dependencies import get_webhook_processor
from ..services.webhooks import WebhookProcessor
from ..utils.signature import SIGNATURE_HEADER

router = APIRouter(tags=["Webhooks"])


@router.post("/paystack-webhook")
async def paystack_webhook(request: Request, processor: WebhookProcessor = Depends(get_webhook_processor)):
    """
    Receive Paystack events.

    The signature is checked against the raw body before anything is parsed.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    await run_in_threadpool(processor.process, raw_body, signature)
    return {"ok": True}
