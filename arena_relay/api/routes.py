"""
HTTP and WebSocket routes for the Arena Relay API.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect

from arena_relay.api.auth import require_bearer
from arena_relay.core.event_bus import EventType
from arena_relay.core.models import Signal, summarize
from arena_relay.core.relay import MarketRelay
from arena_relay.utils.exceptions import ValidationError
from arena_relay.utils.helpers import generate_uuid, safe_json_loads, split_csv, unique


logger = logging.getLogger(__name__)

router = APIRouter()


def _relay(request: Request) -> MarketRelay:
    return request.app.state.relay


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be an object")
    return body


def _string_list(value: Any, name: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"'{name}' must be a list of strings")
    return unique(v.strip() for v in value if v.strip())


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    return _relay(request).get_status()


@router.post("/subscriptions", dependencies=[Depends(require_bearer)])
async def subscribe_markets(request: Request) -> Dict[str, Any]:
    """Real-time notification that agents took positions in new markets."""
    body = await _json_body(request)
    if body.get("type") != "subscribe_markets" or not isinstance(body.get("markets"), list):
        raise ValidationError("Invalid request")

    markets = _string_list(body["markets"], "markets")
    new = await _relay(request).subscribe_markets(markets)
    return {"success": True, "subscribed": len(new)}


@router.post("/signals", dependencies=[Depends(require_bearer)])
async def inject_signal(request: Request) -> Dict[str, Any]:
    """
    Dispatch a signal supplied by the caller.

    Without ``recipients`` the position directory decides who is triggered.
    """
    body = await _json_body(request)
    signal = Signal.from_payload(body.get("signal"))

    recipients: Optional[List[str]] = None
    if body.get("recipients") is not None:
        recipients = _string_list(body["recipients"], "recipients")

    result = await _relay(request).dispatch_signal(signal, recipients)
    return {"success": True, **result.to_dict()}


@router.get("/triggers", dependencies=[Depends(require_bearer)])
async def list_triggers(request: Request) -> Dict[str, Any]:
    records = _relay(request).registry.records()
    return {"count": len(records), "triggers": [r.to_dict() for r in records]}


async def _poll(request: Request, tokens: List[str]) -> Dict[str, Any]:
    if not tokens:
        raise ValidationError("tokens parameter required")
    results = await _relay(request).poller.poll_many(tokens)
    return {
        "results": [r.to_dict() for r in results],
        "summary": summarize(results),
    }


@router.get("/triggers/status", dependencies=[Depends(require_bearer)])
async def trigger_status(request: Request, tokens: Optional[str] = None) -> Dict[str, Any]:
    """Poll trigger tokens given as a comma separated query parameter."""
    return await _poll(request, split_csv(tokens))


@router.post("/triggers/status", dependencies=[Depends(require_bearer)])
async def trigger_status_batch(request: Request) -> Dict[str, Any]:
    """Poll trigger tokens given as ``{"tokens": [...]}``."""
    body = await _json_body(request)
    tokens = body.get("tokens")
    if not tokens:
        raise ValidationError("tokens parameter required")
    return await _poll(request, _string_list(tokens, "tokens"))


@router.get("/events", dependencies=[Depends(require_bearer)])
async def recent_events(
    request: Request,
    type: Optional[str] = None,
    limit: int = 100
) -> Dict[str, Any]:
    """Recent relay events, oldest first, optionally of one ``type``."""
    event_type = None
    if type:
        try:
            event_type = EventType[type.upper()]
        except KeyError:
            raise ValidationError(f"Unknown event type: {type}")

    events = _relay(request).event_bus.get_history(event_type, limit=max(1, min(limit, 1000)))
    return {"count": len(events), "events": [e.to_dict() for e in events]}


@router.websocket("/ws")
async def client_stream(websocket: WebSocket) -> None:
    """
    Frontend stream.

    Clients send ``{"type": "subscribe" | "unsubscribe", "tickers": [...]}``
    and receive every feed message.
    """
    relay: MarketRelay = websocket.app.state.relay
    connections = websocket.app.state.connections
    client_id = generate_uuid()

    await connections.connect(client_id, websocket)
    try:
        while True:
            message = safe_json_loads(await websocket.receive_text())
            if not isinstance(message, dict):
                continue
            tickers = message.get("tickers")
            if not isinstance(tickers, list):
                continue
            tickers = [t for t in tickers if isinstance(t, str) and t]

            if message.get("type") == "subscribe":
                await relay.client_subscribe(client_id, tickers)
                logger.info(f"Client {client_id} subscribed to {len(tickers)} market(s)")
                await websocket.send_json({"type": "subscribed", "tickers": tickers})
            elif message.get("type") == "unsubscribe":
                relay.client_unsubscribe(client_id, tickers)
                await websocket.send_json({"type": "unsubscribed", "tickers": tickers})
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(client_id)
        relay.client_disconnect(client_id)
