"""
Request dependencies: session identity and the process-wide provider clients.
"""
import logging
from dataclasses import dataclass

import redis
from fastapi import Depends, Request
from jose import JWTError, jwt

from historybox.core.config import settings
from historybox.core.errors import Unauthenticated
from historybox.services.geocoding.client import GeocoderClient
from historybox.services.payments.gateway import PaymentGatewayClient

logger = logging.getLogger("auth")


@dataclass
class Identity:
    """What the identity provider tells us about the caller. external_id is opaque."""

    external_id: str
    phone_number: str | None = None


def _extract_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get(settings.auth_cookie_name)


def decode_session_token(token: str) -> Identity | None:
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            options={"verify_aud": False},
        )
    except JWTError as e:
        logger.info("session_token_rejected", extra={"error": str(e)})
        return None
    sub = payload.get("sub")
    if not sub:
        return None
    phone = payload.get("phoneNumber") or payload.get("phone_number")
    return Identity(external_id=str(sub), phone_number=phone)


def get_identity_optional(request: Request) -> Identity | None:
    token = _extract_token(request)
    if not token:
        return None
    return decode_session_token(token)


def get_identity(identity: Identity | None = Depends(get_identity_optional)) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "127.0.0.1"


def get_payment_gateway(request: Request) -> PaymentGatewayClient:
    return request.app.state.payment_gateway


def get_geocoder(request: Request) -> GeocoderClient:
    return request.app.state.geocoder


def get_redis(request: Request) -> redis.Redis | None:
    return getattr(request.app.state, "redis", None)
