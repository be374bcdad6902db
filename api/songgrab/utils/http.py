from typing import Any, Dict, Optional

import requests

from songgrab.errors import ProviderUnavailableError
from songgrab.utils.logging import get_logger


logger = get_logger(__name__)


def build_session(user_agent: str) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
    return session


def get_json(
    session: requests.Session,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """GET ``url`` and decode a JSON object body.

    Transport failures, non-2xx answers and undecodable bodies all become
    ProviderUnavailableError.
    """
    try:
        resp = session.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("upstream request failed url=%s: %s", url, exc)
        raise ProviderUnavailableError(f"Upstream request failed: {exc}") from exc
    try:
        data = resp.json()
    except ValueError as exc:
        raise ProviderUnavailableError("Upstream returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise ProviderUnavailableError("Upstream returned an unexpected body")
    return data
