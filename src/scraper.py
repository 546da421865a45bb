# src/scraper.py
from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from js_literal import evaluate_literal
from palette_errors import ExtractError, FetchError, NotFoundError, PaletteError
from validators import Category, build_palette, write_palette

logger = logging.getLogger(__name__)

# ---------------------------
# Constants & basic utilities
# ---------------------------

BASE_URL = "https://overleaf.writefull.ai"
PAGE_PATH = "/palette.html"
DEFAULT_OUTPUT = os.path.join("data", "palette.json")

HEADERS = {
    "User-Agent": "palette-extractor/1.0 (+https://example.com; sentence palette export)"
}

MARKER = "m={sections:"

# "legacy/" as a whole path segment, a .js file, then an optional ?query or #fragment
LEGACY_SCRIPT_RE = re.compile(r"(?:^|/)legacy/[^?#]*\.js(?:[?#].*)?$", re.I)


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)

# -------------
# HTTP helpers
# -------------

def _is_retryable(exc: BaseException) -> bool:
    # transport failures and 5xx only; 4xx will not change on retry
    return isinstance(exc, FetchError) and (exc.status_code is None or exc.status_code >= 500)


def _get_once(session: requests.Session, url: str, timeout: Optional[float]) -> str:
    try:
        resp = session.get(url, headers=HEADERS, timeout=timeout, stream=True)
    except requests.RequestException as e:
        raise FetchError(url, reason=str(e)) from e
    with resp:
        if resp.status_code >= 400:
            raise FetchError(url, status_code=resp.status_code)
        try:
            body = resp.content
        except requests.RequestException as e:
            raise FetchError(url, reason=str(e)) from e
    return body.decode("utf-8", errors="replace")


def fetch_text(
    session: requests.Session,
    url: str,
    attempts: int = 1,
    timeout: Optional[float] = None,
) -> str:
    """
    GET `url` and return the body as UTF-8 text.
    Single attempt, no timeout unless the caller asks for them.
    """
    logger.info("GET %s", url)
    retrying = Retrying(
        wait=wait_exponential(multiplier=0.8, min=0.5, max=8),
        stop=stop_after_attempt(max(1, attempts)),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    return retrying(_get_once, session, url, timeout)

# --------------------------
# Locating the data snippet
# --------------------------

def locate_script_reference(html: str) -> str:
    """
    Return the `src` of the first <script> pointing into a legacy/ bundle, verbatim.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all("script", src=True):
        src = tag.get("src")
        if LEGACY_SCRIPT_RE.search((src or "").strip()):
            logger.debug("script reference: %s", src)
            return src
    raise NotFoundError("script reference missing")


def extract_snippet(source: str) -> str:
    """
    Cut `m={sections:...}` out of the bundle by counting braces from the marker.
    Braces inside strings are not special-cased; the upstream literal keeps them balanced.
    """
    start = source.find(MARKER)
    if start < 0:
        raise ExtractError("marker not found")

    depth = 0
    for i in range(start, len(source)):
        ch = source[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                snippet = source[start:i + 1]
                logger.debug("snippet at %d, %d chars", start, len(snippet))
                return snippet

    raise ExtractError("unbalanced braces")

# ----------------
# Top-level run
# ----------------

def run_pipeline(
    out_path: str,
    session: Optional[requests.Session] = None,
    base_url: str = BASE_URL,
    page_path: str = PAGE_PATH,
    script_source: Optional[str] = None,
    attempts: int = 1,
    timeout: Optional[float] = None,
) -> List[Category]:
    """
    page -> script reference -> script -> snippet -> literal -> palette -> file.
    `script_source` skips both fetches (offline run from a saved bundle).
    Nothing is written unless every earlier step succeeded.
    """
    if script_source is None:
        session = session or requests.Session()
        page_url = urljoin(f"{base_url}/", page_path)
        html = fetch_text(session, page_url, attempts, timeout)
        script_url = urljoin(page_url, locate_script_reference(html))
        script_source = fetch_text(session, script_url, attempts, timeout)

    snippet = extract_snippet(script_source)
    structure = evaluate_literal(snippet)
    palette = build_palette(structure)
    write_palette(palette, out_path)
    return palette

# -----
# CLI
# -----

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Extract the sentence palette into JSON")
    parser.add_argument("--base-url", default=BASE_URL, help="Upstream host.")
    parser.add_argument("--page-path", default=PAGE_PATH, help="Page that references the legacy bundle.")
    parser.add_argument("-o", "--out", default=DEFAULT_OUTPUT, help="Where to write the palette JSON.")
    parser.add_argument("--script-file", default=None, help="Parse a saved copy of the bundle instead of fetching.")
    parser.add_argument("--retries", type=int, default=1, help="Attempts per request (default: 1).")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds (default: none).")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING... (default: $LOG_LEVEL or INFO)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        script_source = None
        if args.script_file:
            try:
                with open(args.script_file, "r", encoding="utf-8") as f:
                    script_source = f.read()
            except OSError as e:
                raise FetchError(args.script_file, reason=str(e)) from e
        palette = run_pipeline(
            args.out,
            base_url=args.base_url.rstrip("/"),
            page_path=args.page_path,
            script_source=script_source,
            attempts=args.retries,
            timeout=args.timeout,
        )
    except PaletteError as e:
        logger.exception("pipeline failed")
        print(f"[error] {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    topics = sum(len(c.topics) for c in palette)
    print(f"[ok] wrote {len(palette)} categories ({topics} topics) to {args.out}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
