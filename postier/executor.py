"""Request execution: turns a RequestDescriptor into a ResponseDescriptor.

make_request never raises. Every failure is reported in the response with
status code 0 and a tag in ``status`` (or, when the body read fails, with the
status that was already received) and the error text in ``body``.
Durations are milliseconds measured with time.perf_counter.
"""
import logging
import re
import socket
import threading
import time
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests
from urllib3.util import parse_url

from .models import Cookie, RequestDescriptor, ResponseDescriptor

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0  # seconds, whole call
CHUNK_SIZE = 8192

STATUS_INVALID_URL = "Invalid URL"
STATUS_CREATION_ERROR = "Request Creation Error"
STATUS_REQUEST_ERROR = "Request Error"

_METHOD_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _failure(status: str, body: str, start: float, status_code: int = 0,
             headers: Optional[Dict[str, List[str]]] = None) -> ResponseDescriptor:
    return ResponseDescriptor(
        status_code=status_code,
        status=status,
        headers=headers or {},
        body=body,
        size=len(body.encode("utf-8")),
        duration=_elapsed_ms(start),
    )


def parse_request_url(url: str) -> str:
    """Validate a URL the way the transport will see it. Raises ValueError."""
    if not url or not url.strip():
        raise ValueError("empty url")
    if _CONTROL_CHARS.search(url):
        raise ValueError(f"parse {url!r}: invalid control character in URL")
    parse_url(url)  # LocationParseError is a ValueError
    return url


def merge_query(url: str, query: Dict[str, str]) -> str:
    """Append query params to the URL's own query string. Existing pairs are kept."""
    parts = urlsplit(url)
    pairs: List[Tuple[str, str]] = parse_qsl(parts.query, keep_blank_values=True)
    pairs.extend((str(k), str(v)) for k, v in query.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), parts.fragment))


def normalize_method(method: str) -> str:
    """Empty means GET. Raises ValueError for anything that is not an HTTP token."""
    method = method.strip() or "GET"
    if not _METHOD_TOKEN.match(method):
        raise ValueError(f"invalid method {method!r}")
    return method


def build_request(session: requests.Session, method: str, url: str,
                  headers: Dict[str, str], body: str) -> requests.PreparedRequest:
    """Prepare the request on session. URL and header problems raise RequestException."""
    req = requests.Request(
        method=method,
        url=url,
        headers=dict(headers or {}),
        data=body.encode("utf-8") if body else None,
    )
    # session defaults (User-Agent, Accept...) are replaced by same-named request headers
    return session.prepare_request(req)


def collect_headers(resp: requests.Response) -> Dict[str, List[str]]:
    raw_headers = getattr(resp.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        return {name: list(raw_headers.getlist(name)) for name in raw_headers}
    return {name: [value] for name, value in resp.headers.items()}


def _header_values(headers: Dict[str, List[str]], name: str) -> List[str]:
    out: List[str] = []
    for key, values in headers.items():
        if key.lower() == name.lower():
            out.extend(values)
    return out


def parse_set_cookie(line: str) -> Optional[Cookie]:
    """Parse one Set-Cookie header value. Returns None when there is no name=value pair."""
    parts = [p.strip() for p in line.split(";")]
    if not parts or "=" not in parts[0]:
        return None
    name, value = parts[0].split("=", 1)
    name = name.strip()
    if not name:
        return None
    value = value.strip()
    if len(value) > 1 and value[0] == value[-1] == '"':
        value = value[1:-1]
    cookie = Cookie(name=name, value=value)
    for attr in parts[1:]:
        if not attr:
            continue
        key, _, val = attr.partition("=")
        key = key.strip().lower()
        val = val.strip()
        if key == "domain":
            cookie.domain = val.lstrip(".")
        elif key == "path":
            cookie.path = val
        elif key == "expires":
            try:
                expires = parsedate_to_datetime(val)
            except (TypeError, ValueError, IndexError):
                logger.debug(f"Ignoring bad cookie expiry {val!r}")
                continue
            if expires is not None:
                if expires.tzinfo is None:
                    expires = expires.replace(tzinfo=timezone.utc)
                cookie.expires = expires
        elif key == "secure":
            cookie.secure = True
        elif key == "httponly":
            cookie.http_only = True
    return cookie


def extract_cookies(headers: Dict[str, List[str]]) -> List[Cookie]:
    cookies = []
    for line in _header_values(headers, "Set-Cookie"):
        cookie = parse_set_cookie(line)
        if cookie is None:
            logger.debug(f"Skipping malformed Set-Cookie header {line!r}")
            continue
        cookies.append(cookie)
    return cookies


def _remaining(deadline: float) -> float:
    remaining = deadline - time.perf_counter()
    if remaining <= 0:
        raise requests.exceptions.Timeout(f"timeout of {REQUEST_TIMEOUT:g}s exceeded")
    return remaining


def send_request(session: requests.Session, prepared: requests.PreparedRequest,
                 deadline: float) -> requests.Response:
    """Send prepared and follow redirects.

    Each hop gets only what is left of the deadline as its connect and read
    timeout, so a redirect chain cannot stretch the call past it.
    """
    resp = session.send(prepared, timeout=_remaining(deadline), stream=True, allow_redirects=False)
    hops = 0
    while resp.is_redirect:
        if hops >= session.max_redirects:
            resp.close()
            raise requests.exceptions.TooManyRedirects(
                f"Exceeded {session.max_redirects} redirects.", response=resp)
        prepared = next(session.resolve_redirects(resp, prepared, yield_requests=True))
        resp = session.send(prepared, timeout=_remaining(deadline), stream=True,
                            allow_redirects=False)
        hops += 1
    return resp


def _abort_read(resp: requests.Response, aborted: threading.Event) -> None:
    """Shut the response socket down so a read blocked on it returns."""
    conn = getattr(resp.raw, "connection", None)
    sock = getattr(conn, "sock", None)
    aborted.set()
    if sock is None:
        return
    logger.debug("Deadline reached while reading body, closing connection")
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Socket shutdown failed: {e}")


def read_body(resp: requests.Response, deadline: float) -> bytes:
    """Read the whole body before deadline.

    A socket timeout only bounds a single recv, so a peer sending a byte at a
    time would never trip it. A timer shuts the socket down at the deadline
    instead and the resulting broken read is reported as a timeout.
    """
    aborted = threading.Event()
    watchdog = threading.Timer(_remaining(deadline), _abort_read, args=(resp, aborted))
    watchdog.daemon = True
    watchdog.start()
    chunks = []
    try:
        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
            chunks.append(chunk)
            if time.perf_counter() > deadline:
                raise requests.exceptions.ReadTimeout(
                    f"timeout of {REQUEST_TIMEOUT:g}s exceeded while reading body")
    except requests.exceptions.RequestException as e:
        timed_out = aborted.is_set() or time.perf_counter() >= deadline
        if timed_out and not isinstance(e, requests.exceptions.Timeout):
            raise requests.exceptions.ReadTimeout(
                f"timeout of {REQUEST_TIMEOUT:g}s exceeded while reading body") from e
        raise
    finally:
        watchdog.cancel()
    return b"".join(chunks)


def make_request(req: RequestDescriptor) -> ResponseDescriptor:
    start = time.perf_counter()
    deadline = start + REQUEST_TIMEOUT
    logger.debug(f"Request: {req.method} {req.url}")

    try:
        url = parse_request_url(req.url)
    except ValueError as e:
        logger.warning(f"Invalid URL {req.url!r}: {e}")
        return _failure(STATUS_INVALID_URL, f"Error parsing URL: {e}", start)

    if req.query:
        url = merge_query(url, req.query)

    try:
        method = normalize_method(req.method)
    except ValueError as e:
        logger.warning(f"Could not build request {req.method!r} {url}: {e}")
        return _failure(STATUS_CREATION_ERROR, f"Error creating request: {e}", start)

    with requests.Session() as session:
        try:
            prepared = build_request(session, method, url, req.headers, req.body)
            resp = send_request(session, prepared, deadline)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Request failed: {method} {url} - {e}")
            return _failure(STATUS_REQUEST_ERROR, f"Error making request: {e}", start)

        with resp:
            status = f"{resp.status_code} {resp.reason or ''}".strip()
            headers = collect_headers(resp)
            try:
                content = read_body(resp, deadline)
            except (requests.exceptions.RequestException, ValueError) as e:
                logger.warning(f"Reading body failed: {prepared.method} {prepared.url} - {e}")
                return _failure(status, f"Error reading response body: {e}", start,
                                status_code=resp.status_code, headers=headers)

    response = ResponseDescriptor(
        status_code=resp.status_code,
        status=status,
        headers=headers,
        cookies=extract_cookies(headers),
        body=content.decode("utf-8", errors="replace"),
        size=len(content),
        duration=_elapsed_ms(start),
    )
    logger.debug(f"Response: {response.status} ({response.duration:.3f}ms, {response.size} bytes)")
    return response
