import json
import logging

import requests
from requests import RequestException
from django.conf import settings

from payments.exceptions import GatewayError

logger = logging.getLogger(__name__)

COMMON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def gateway_timeout() -> float:
    return float(getattr(settings, "PAYMENTS", {}).get("GATEWAY_TIMEOUT", 15))


def post_json(url: str, payload: dict, *, gateway: str) -> dict:
    """POST ``payload`` as JSON and return the decoded object body.

    Any transport failure or unparseable body becomes a :class:`GatewayError`.
    """
    if not url:
        raise GatewayError(f"{gateway}: endpoint is not configured")
    try:
        resp = requests.post(url, json=payload, headers=COMMON_HEADERS, timeout=gateway_timeout())
    except RequestException as e:
        logger.warning("%s request to %s failed: %s", gateway, url, e)
        raise GatewayError(f"{gateway}: request failed: {e}")
    try:
        data = resp.json()
    except ValueError:
        logger.error("%s returned non-JSON body (HTTP %s): %s", gateway, resp.status_code, resp.text[:500])
        raise GatewayError(f"{gateway}: invalid response (HTTP {resp.status_code})")
    if not isinstance(data, dict):
        raise GatewayError(f"{gateway}: unexpected response: {json.dumps(data)[:200]}")
    return data
