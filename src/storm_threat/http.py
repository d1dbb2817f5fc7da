"""Shared HTTP session with optional retry/backoff."""

from __future__ import annotations

from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_USER_AGENT = "StormThreat/0.1 (contact@example.com)"


def create_session(
    retries: int = 0,
    backoff_factor: float = 0.5,
    status_forcelist: tuple[int, ...] = (429, 500, 502, 503, 504),
    user_agent: str = DEFAULT_USER_AGENT,
) -> Session:
    """Create a requests Session that identifies itself to upstream APIs.

    The aggregator makes a single attempt per source, so ``retries``
    defaults to 0. Callers that poll in the background may raise it;
    backoff schedule (backoff_factor=0.5): 0s, 0.5s, 1s.
    """
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = Session()
    session.headers.update({"User-Agent": user_agent})
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session
