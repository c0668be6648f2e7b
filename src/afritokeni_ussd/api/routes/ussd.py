"""USSD gateway callback.

The gateway posts every turn of a dial-in here and relays the plain-text body
back to the handset: ``CON <text>`` keeps the session open, ``END <text>``
closes it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from afritokeni_ussd.api.deps import get_ussd_router
from afritokeni_ussd.logging_config import get_logger
from afritokeni_ussd.schemas.ussd import UssdRequest
from afritokeni_ussd.ussd.router import UssdRouter

router = APIRouter(prefix="/api", tags=["USSD"])
logger = get_logger(__name__)


@router.post(
    "/ussd",
    response_class=PlainTextResponse,
    summary="Handle one USSD turn",
)
async def ussd_callback(
    request: UssdRequest,
    ussd: UssdRouter = Depends(get_ussd_router),
) -> PlainTextResponse:
    response = await ussd.handle(request.session_id, request.phone_number, request.text)
    logger.debug("ussd.responded", kind=response.kind.value)
    return PlainTextResponse(response.render())
