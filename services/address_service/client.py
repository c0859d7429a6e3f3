import re
from typing import Optional

import httpx
import structlog

from shared.config.settings import ADDRESS_LOOKUP_URL, HTTP_TIMEOUT_SECONDS
from shared.errors import DependencyError
from .schemas import ResolvedAddress

logger = structlog.get_logger(__name__)

_NON_DIGITS = re.compile(r"\D")


def normalize_postal_code(postal_code: str) -> Optional[str]:
    """Strip punctuation; returns None unless exactly 8 digits remain."""
    if not postal_code:
        return None
    digits = _NON_DIGITS.sub("", postal_code)
    return digits if len(digits) == 8 else None


class AddressLookupClient:
    """
    Resolves a postal code to a partial address through a ViaCEP-style API
    (`GET {base}/{digits}/json/`, answering `{"erro": true}` when unknown).

    Not found and malformed codes return None. Transport failures and 5xx
    answers raise DependencyError.
    """

    def __init__(
        self,
        base_url: str = ADDRESS_LOOKUP_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def resolve(self, postal_code: str) -> Optional[ResolvedAddress]:
        digits = normalize_postal_code(postal_code)
        if digits is None:
            logger.info("postal_code_invalid", postal_code=postal_code)
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(f"{self.base_url}/{digits}/json/")
        except httpx.HTTPError as e:
            logger.warning("address_lookup_unavailable", postal_code=digits, error=str(e))
            raise DependencyError("address lookup service unavailable", postal_code=digits) from e

        # ViaCEP answers 400 for malformed codes
        if resp.status_code in (400, 404):
            return None
        if resp.status_code >= 400:
            logger.warning("address_lookup_failed", postal_code=digits, status=resp.status_code)
            raise DependencyError("address lookup service failed", postal_code=digits)

        try:
            payload = resp.json()
        except ValueError as e:
            logger.warning("address_lookup_unreadable", postal_code=digits, body=resp.text[:200])
            raise DependencyError("address lookup returned an unreadable reply", postal_code=digits) from e
        if not isinstance(payload, dict):
            logger.warning("address_lookup_unreadable", postal_code=digits, body=resp.text[:200])
            raise DependencyError("address lookup returned an unreadable reply", postal_code=digits)

        if payload.get("erro"):
            logger.info("postal_code_not_found", postal_code=digits)
            return None

        return ResolvedAddress(
            postal_code=payload.get("cep") or digits,
            street=payload.get("logradouro") or None,
            neighborhood=payload.get("bairro") or None,
            city=payload.get("localidade") or None,
            region=payload.get("uf") or None,
        )


def get_address_client() -> AddressLookupClient:
    return AddressLookupClient()
