import httpx
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from pydantic import ValidationError
from typing import Optional

from constants import PUSH_HEADER
from directory import PresenceDirectory
from schemas.messages import PingFrame, RelayRequest, RoomFrame, decode_frame
from logging_config import get_logger

logger = get_logger(__name__)

signaling_router = APIRouter(tags=["signaling"])


def get_directory(request: Request) -> PresenceDirectory:
    return request.app.state.directory


def require_send_url(send_url: Optional[str]) -> str:
    if not send_url:
        logger.warning(f"Rejected request without {PUSH_HEADER} header")
        raise HTTPException(status_code=400, detail=f'missing required header: "{PUSH_HEADER}"')
    # The url becomes the peer's identity and a push target, so it has to be one we can POST to
    try:
        url = httpx.URL(send_url)
    except httpx.InvalidURL:
        url = None
    if url is None or url.scheme not in ("http", "https") or not url.host:
        logger.warning(f"Rejected unusable {PUSH_HEADER} header: {send_url!r}")
        raise HTTPException(status_code=400, detail=f'unable to parse "{PUSH_HEADER}" header as a url')
    return send_url


@signaling_router.post("/frame")
async def frame(
    request: Request,
    send_url: Optional[str] = Header(None, alias=PUSH_HEADER),
    directory: PresenceDirectory = Depends(get_directory),
):
    # Every text frame the client writes to its socket arrives here via the push bridge
    url = require_send_url(send_url)
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="expected non-empty body")
    try:
        message = decode_frame(body)
    except ValidationError as e:
        logger.warning(f"Malformed frame from {url}: {e.error_count()} errors")
        raise HTTPException(status_code=400, detail="malformed frame")

    if isinstance(message, RoomFrame):
        await directory.join(url, message.name)
    elif isinstance(message, PingFrame):
        logger.debug(f"Ping from {url}")
    else:
        raise AssertionError(f"unhandled frame {message!r}")
    return Response(status_code=200)


@signaling_router.post("/disconnect")
async def disconnect(
    send_url: Optional[str] = Header(None, alias=PUSH_HEADER),
    directory: PresenceDirectory = Depends(get_directory),
):
    url = require_send_url(send_url)
    logger.info(f"Disconnect from {url}")
    await directory.leave(url)
    return Response(status_code=200)


@signaling_router.post("/peer")
async def relay(
    request: Request,
    send_url: Optional[str] = Header(None, alias=PUSH_HEADER),
    directory: PresenceDirectory = Depends(get_directory),
):
    """Forward a negotiation message to another peer for clients that cannot reach its push url."""
    url = require_send_url(send_url)
    try:
        relay_request = RelayRequest.model_validate_json(await request.body())
    except ValidationError as e:
        logger.warning(f"Malformed relay request from {url}: {e.error_count()} errors")
        raise HTTPException(status_code=400, detail="malformed relay request")

    await directory.relay(url, relay_request.url, relay_request.message)
    return Response(status_code=200)
