"""
GitHub OAuth token exchange client.

The browser side of the OAuth flow hands us an authorization code. The
exchange itself happens in a small proxy (it holds the client secret); this
module only posts the code there and reads back the token.
"""
import logging
from typing import Dict, Optional

import requests

from .errors import TokenExchangeError

logger = logging.getLogger(__name__)


def exchange_code(
    exchange_url: str,
    code: str,
    timeout: float = 10.0,
    session: Optional[requests.Session] = None,
) -> Dict[str, str]:
    """Exchange an OAuth code for ``{"access_token", "scope"}``."""
    if not exchange_url:
        raise TokenExchangeError("token_exchange_url is not configured")
    if not code:
        raise TokenExchangeError("Missing authorization code")

    http = session or requests
    try:
        r = http.post(
            exchange_url,
            json={"code": code},
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise TokenExchangeError(f"Token exchange failed: {e}") from e

    try:
        data = r.json()
    except ValueError:
        data = {}

    if not r.ok or data.get("error"):
        detail = data.get("error_description") or data.get("error") or f"HTTP {r.status_code}"
        raise TokenExchangeError(f"Token exchange rejected: {detail}")

    token = data.get("access_token")
    if not token:
        raise TokenExchangeError("Token exchange returned no access_token")

    logger.info(f"GitHub token obtained (scope={data.get('scope', '')})")
    return {"access_token": token, "scope": data.get("scope", "")}
