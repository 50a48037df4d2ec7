"""Single-shot HTTP retrieval used for manifests and template files."""

from __future__ import annotations

import socket
from typing import Callable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import NetworkError

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "starter-template-fetcher"

Fetcher = Callable[..., bytes]


def fetch(url: str, *, timeout: float | None = DEFAULT_TIMEOUT) -> bytes:
    """Return the body of ``url`` or raise :class:`NetworkError`."""
    request = Request(url, headers={"User-Agent": USER_AGENT}, method="GET")
    try:
        with urlopen(request, timeout=timeout or DEFAULT_TIMEOUT) as response:  # type: ignore[arg-type]
            return response.read()
    except HTTPError as exc:
        raise NetworkError(f"failed to fetch {url}: HTTP {exc.code} {exc.reason}") from exc
    except URLError as exc:
        raise NetworkError(f"failed to fetch {url}: {exc.reason}") from exc
    except (socket.timeout, TimeoutError) as exc:
        raise NetworkError(f"failed to fetch {url}: timed out after {timeout}s") from exc
    except OSError as exc:
        raise NetworkError(f"failed to fetch {url}: {exc}") from exc


__all__ = ["DEFAULT_TIMEOUT", "Fetcher", "fetch"]
