from typing import Any


class FetchError(Exception):
    """
    FetchError is the base for every failure surfaced by the
    authenticated fetcher. Callers that want a single error
    policy catch this one.
    """

    kind: "str" = "fetch"

    def __init__(self, url: "str", message: "str") -> "None":
        super().__init__(message)
        self.url = url


class AuthExhausted(FetchError):
    """
    every auth scheme was answered with 401. The credential is
    likely invalid, expired or lacks the scope for this endpoint.
    """

    kind = "auth_exhausted"

    def __init__(self, url: "str", attempts: "int") -> "None":
        super().__init__(url, f"all {attempts} auth schemes rejected for {url}")
        self.attempts = attempts


class UpstreamError(FetchError):
    """
    the upstream answered with a non-401 error status.
    """

    kind = "upstream"

    def __init__(self, url: "str", status: "int", body: "Any") -> "None":
        super().__init__(url, f"upstream returned HTTP {status} for {url}")
        self.status = status
        self.body = body


class TransportError(FetchError):
    """
    the request never produced a response (DNS, timeout, reset).
    """

    kind = "transport"

    def __init__(self, url: "str", reason: "str") -> "None":
        super().__init__(url, f"request to {url} failed: {reason}")
        self.reason = reason


class MalformedResponse(FetchError):
    """
    a successful response whose body is not the JSON shape the
    metering API documents.
    """

    kind = "malformed"

    def __init__(self, url: "str", reason: "str") -> "None":
        super().__init__(url, f"malformed response from {url}: {reason}")
        self.reason = reason


class PaginationLimitExceeded(FetchError):
    """
    the upstream kept returning full pages past the page cap.
    """

    kind = "pagination"

    def __init__(self, url: "str", max_pages: "int") -> "None":
        super().__init__(url, f"more than {max_pages} pages returned by {url}")
        self.max_pages = max_pages
