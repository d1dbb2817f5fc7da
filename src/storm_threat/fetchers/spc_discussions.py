"""SPC mesoscale discussion (MCD) fetcher and text scraper.

MCDs are issued one to three hours ahead of most watches and may carry a
"probability of watch issuance". The pages are free-form HTML, so parsing
is best-effort: any field that cannot be found is left as None.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable

from bs4 import BeautifulSoup
from requests import RequestException, Session

from storm_threat.http import create_session
from storm_threat.models import MesoscaleDiscussion

logger = logging.getLogger(__name__)

SPC_MCD_URL = "https://www.spc.noaa.gov/products/md"

MAX_INDEX_ENTRIES = 10
MAX_DISCUSSIONS = 5
RAW_TEXT_LIMIT = 1000

_MD_HREF = re.compile(r"(md\d{4})\.html$")
_CONCERNING = re.compile(r"CONCERNING[.]{3}([^\n]+)", re.IGNORECASE)
_AREAS = re.compile(r"AREAS AFFECTED[.]{3}([^\n]+)", re.IGNORECASE)
_STATE = re.compile(r"\b[A-Z]{2}\b")
_ISSUANCE = re.compile(r"PROBABILITY OF WATCH ISSUANCE[.]{3}\s*(\d+)\s*PERCENT", re.IGNORECASE)
_PROB_BEFORE_WATCH = re.compile(r"(\d+)\s*%?\s*(?:probability|chance).*watch", re.IGNORECASE)
_TORNADO = re.compile(r"tornado", re.IGNORECASE)


def parse_discussion_ids(index_html: str) -> list[str]:
    """Return unique ``mdNNNN`` ids in link order, newest first on SPC's index."""
    soup = BeautifulSoup(index_html, "html.parser")
    seen: dict[str, None] = {}
    for a in soup.find_all("a", href=True):
        match = _MD_HREF.search(str(a["href"]).strip())
        if match:
            seen.setdefault(match.group(1), None)
    return list(seen)[:MAX_INDEX_ENTRIES]


def _watch_probability(text: str) -> int | None:
    match = _ISSUANCE.search(text) or _PROB_BEFORE_WATCH.search(text)
    if match is None:
        return None
    value = int(match.group(1))
    return value if 0 <= value <= 100 else None


def parse_discussion(html: str, number: str) -> MesoscaleDiscussion:
    """Scrape the fields we use from one MCD page. Never raises on odd input.

    The discussion body lives in a ``<pre>`` block that may contain inline
    links; its full text is used when present, else the whole page text.
    """
    soup = BeautifulSoup(html, "html.parser")
    pre = soup.find("pre")
    body = pre.get_text() if pre is not None else None
    text = body if body is not None else soup.get_text("\n")

    concerning = _CONCERNING.search(text)
    areas = _AREAS.search(text)
    affected = areas.group(1).strip() if areas else None
    return MesoscaleDiscussion(
        number=number,
        concerning=concerning.group(1).strip() if concerning else None,
        affected_areas=affected,
        states=_STATE.findall(affected) if affected else [],
        watch_probability=_watch_probability(text),
        mentions_tornado=bool(_TORNADO.search(text)),
        raw_text=body[:RAW_TEXT_LIMIT] if body else None,
    )


def fetch_discussions(
    timeout: int = 15,
    session: Session | None = None,
    total_timeout: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> list[MesoscaleDiscussion]:
    """Fetch the latest mesoscale discussions.

    A failure on the index page fails the whole source; a failure on an
    individual discussion page only skips that discussion. With
    ``total_timeout`` set, no request outlives that budget: each one gets
    the smaller of ``timeout`` and the time left, and pages not started
    before the budget runs out are skipped.
    """
    if session is None:
        session = create_session()
    deadline = None if total_timeout is None else clock() + total_timeout

    def remaining() -> float:
        return timeout if deadline is None else min(timeout, deadline - clock())

    resp = session.get(f"{SPC_MCD_URL}/", headers={"Accept": "text/html"}, timeout=remaining())
    resp.raise_for_status()
    ids = parse_discussion_ids(resp.text)

    discussions: list[MesoscaleDiscussion] = []
    for md_id in ids[:MAX_DISCUSSIONS]:
        left = remaining()
        if left <= 0:
            logger.warning("MCD time budget spent; skipped %s and later", md_id)
            break
        try:
            page = session.get(f"{SPC_MCD_URL}/{md_id}.html", timeout=left)
            page.raise_for_status()
        except RequestException:
            logger.warning("Skipping mesoscale discussion %s", md_id, exc_info=True)
            continue
        discussions.append(parse_discussion(page.text, md_id.removeprefix("md")))

    logger.debug("SPC: %d mesoscale discussion(s) parsed", len(discussions))
    return discussions
