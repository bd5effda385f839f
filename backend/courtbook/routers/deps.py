from fastapi import Request

from ..services.ledger import Ledger
from ..services.storage import LedgerStore


def get_ledger(request: Request) -> Ledger:
    """The single ledger instance shared by every request."""

    return request.app.state.ledger


def get_store(request: Request) -> LedgerStore:
    return request.app.state.store


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        parts = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
        if parts:
            return parts[-1]
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"
