import re
from typing import Any, Mapping

import httpx
import structlog

from oceanbill.errors import AuthExhausted, TransportError, UpstreamError
from oceanbill.models import AuthScheme

logger = structlog.get_logger()

# tried strictly in this order. The upstream accepts different
# header conventions depending on how the key was issued.
AUTH_SCHEMES: "tuple[AuthScheme, ...]" = (
    AuthScheme("authorization_raw", "Authorization"),
    AuthScheme("authorization_bearer", "Authorization", bearer=True),
    AuthScheme("access_token_raw", "Access-Token"),
    AuthScheme("access_token_bearer", "Access-Token", bearer=True),
    AuthScheme("x_api_key", "X-API-Key"),
)

BASE_HEADERS: "dict[str, str]" = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

_BEARER_PREFIX = re.compile(r"^bearer(\s+|$)", re.IGNORECASE)


def clean_token(credential: "str") -> "str":
    """
    strips surrounding whitespace and a leading, case-insensitive
    'Bearer ' prefix from a raw credential.
    """
    return _BEARER_PREFIX.sub("", credential.strip(), count=1)


class AuthenticatedFetcher:
    """
    AuthenticatedFetcher performs GET requests against the metering API,
    presenting the credential under each scheme in AUTH_SCHEMES until one
    is not rejected with a 401.

    Only 401 moves on to the next scheme. Any other error status, or a
    transport failure, ends the call immediately, so at most
    len(AUTH_SCHEMES) requests are issued per call.
    """

    def __init__(
        self,
        credential: "str",
        client: "httpx.AsyncClient | None" = None,
        timeout: "float | None" = None,
        schemes: "tuple[AuthScheme, ...]" = AUTH_SCHEMES,
    ) -> "None":
        token = clean_token(credential or "")
        if not token:
            raise ValueError("API key is required")

        self._token = token
        self._schemes = schemes
        self._timeout = timeout
        self._owns_client = client is None
        self._client: "httpx.AsyncClient" = client or httpx.AsyncClient(timeout=None)
        self.last_scheme: "str | None" = None

    async def close(self) -> "None":
        """
        closes the underlying HTTP client when the fetcher created it.
        """
        if self._owns_client:
            await self._client.aclose()

    async def get(
        self,
        url: "str",
        params: "Mapping[str, str | int] | None" = None,
    ) -> "httpx.Response":
        """
        issues the GET request, falling back through the auth schemes
        on 401 only. Returns the first non-error response.
        """
        timeout: "Any" = (
            httpx.USE_CLIENT_DEFAULT if self._timeout is None else self._timeout
        )

        for scheme in self._schemes:
            headers = {**BASE_HEADERS, **scheme.headers(self._token)}
            logger.debug("auth_scheme_attempt", url=url, scheme=scheme.name)

            try:
                resp = await self._client.get(
                    url,
                    params=dict(params) if params else None,
                    headers=headers,
                    timeout=timeout,
                )
            except httpx.TransportError as exc:
                logger.warning(
                    "auth_fetch_transport_error",
                    url=url,
                    scheme=scheme.name,
                    error=str(exc),
                )
                raise TransportError(url, str(exc) or type(exc).__name__) from exc

            if resp.status_code == 401:
                logger.debug("auth_scheme_rejected", url=url, scheme=scheme.name)
                continue

            if resp.is_error:
                raise UpstreamError(url, resp.status_code, _response_body(resp))

            self.last_scheme = scheme.name
            logger.debug(
                "auth_scheme_accepted",
                url=url,
                scheme=scheme.name,
                status=resp.status_code,
            )
            return resp

        logger.warning("auth_schemes_exhausted", url=url, attempts=len(self._schemes))
        raise AuthExhausted(url, len(self._schemes))


def _response_body(resp: "httpx.Response") -> "Any":
    try:
        return resp.json()
    except ValueError:
        return resp.text
