"""Minimal JSON-over-HTTP helper built on urllib."""

import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

USER_AGENT = "npm-publish-helper/1.0"
DEFAULT_TIMEOUT = 30


@dataclass
class HttpResponse:
    """Outcome of an HTTP request.

    Attributes:
        status: HTTP status code (0 when the request never got a response)
        body: Decoded response body, or the network error message
        reason: HTTP reason phrase
    """

    status: int
    body: str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def network_error(self) -> bool:
        return self.status == 0

    def json(self) -> Any:
        return json.loads(self.body)


def post_json(
    url: str,
    payload: Any,
    headers: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> HttpResponse:
    """POST a JSON payload.

    HTTP error statuses and network failures are returned, not raised.

    Args:
        url: Target URL
        payload: JSON-serializable body
        headers: Extra request headers
        timeout: Timeout in seconds

    Returns:
        HttpResponse (status 0 for network failures)
    """
    request_headers = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }
    if headers:
        request_headers.update(headers)

    try:
        req = urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers=request_headers,
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return HttpResponse(
                status=response.status,
                body=response.read().decode("utf-8", errors="replace"),
                reason=response.reason or "",
            )
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8", errors="replace") if e.fp else ""
        return HttpResponse(status=e.code, body=body, reason=str(e.reason or ""))
    except urllib.error.URLError as e:
        return HttpResponse(status=0, body=str(e.reason))
    except (TimeoutError, OSError) as e:
        return HttpResponse(status=0, body=str(e))
    except ValueError as e:
        # Malformed URL: missing scheme, spaces or control characters
        return HttpResponse(status=0, body=str(e))
