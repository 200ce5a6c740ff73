import logging
from typing import Tuple

import requests

from .errors import PairUnsupportedError

logger = logging.getLogger(__name__)

PROTOCOL_API_KEY = "apikey"
PROTOCOL_TOKEN = "token"
SUPPORTED_PROTOCOLS = (PROTOCOL_API_KEY, PROTOCOL_TOKEN)


def parse_credential(credential: str) -> Tuple[str, str]:
    """
    Splits a credential of the form "<protocol>:<value>".
    Supported protocols are "apikey" and "token" (an OAuth access token
    obtained elsewhere; no OAuth flow is run here).
    """
    if not credential or ":" not in credential:
        raise PairUnsupportedError(f"credential {credential!r}")

    protocol, value = credential.split(":", 1)
    if protocol not in SUPPORTED_PROTOCOLS or not value:
        raise PairUnsupportedError(f"credential protocol {protocol!r}")
    return protocol, value


def build_session(credential: str) -> requests.Session:
    """Returns a requests session authenticated with the given credential."""
    protocol, value = parse_credential(credential)

    session = requests.Session()
    if protocol == PROTOCOL_API_KEY:
        session.params = {"key": value}
    else:
        session.headers["Authorization"] = f"Bearer {value}"

    logger.debug(f"Built Drive session using {protocol} credential")
    return session
