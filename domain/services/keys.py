"""URL normalization and content-addressed cache keys."""

from __future__ import annotations

import hashlib
import ipaddress
import re
from urllib.parse import quote, urlsplit, urlunsplit

from domain.errors import InvalidUrlError
from domain.models import CaptureFormat, CaptureRequest

DEFAULT_SCHEME = "http"
KEY_SEPARATOR = "|"

_SCHEME_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_HOST_PATTERN = re.compile(r"^[a-z0-9._~!$&'()*+,;=-]+$")
_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}
_SPECIAL_SCHEMES = frozenset(_DEFAULT_PORTS)
_SINGLE_DOT = frozenset({".", "%2e"})
_DOUBLE_DOT = frozenset({"..", ".%2e", "%2e.", "%2e%2e"})
_PATH_SAFE = "/:@!$&'()*+,;=-._~%"
_QUERY_SAFE = _PATH_SAFE + "?"


def normalize_url(raw: str) -> str:
    """
    Canonicalize a user supplied URL.

    Inputs without a ``scheme://`` prefix are treated as ``http://``. The
    scheme and host are lowercased, default ports dropped, an empty path
    becomes ``/``, ``.`` and ``..`` segments are resolved and path, query and
    fragment are percent-encoded the same way every time. For http(s),
    ws(s) and ftp a backslash before the query counts as ``/``, as browsers
    read it. Raises ``InvalidUrlError`` when no valid host remains.
    """
    candidate = (raw or "").strip()
    if not candidate:
        raise InvalidUrlError()
    if not _SCHEME_PREFIX.match(candidate):
        candidate = f"{DEFAULT_SCHEME}://{candidate}"
    scheme_name = candidate.split(":", 1)[0].lower()
    if scheme_name in _SPECIAL_SCHEMES:
        candidate = _slashes_before_query(candidate)

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise InvalidUrlError() from exc
    if not parts.hostname:
        raise InvalidUrlError()

    scheme = parts.scheme.lower()
    netloc = _canonical_host(parts.hostname)
    userinfo, at, _ = parts.netloc.rpartition("@")
    if at:
        netloc = f"{userinfo}@{netloc}"
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    path = _remove_dot_segments(quote(parts.path, safe=_PATH_SAFE))
    query = quote(parts.query, safe=_QUERY_SAFE)
    fragment = quote(parts.fragment, safe=_QUERY_SAFE)
    return urlunsplit((scheme, netloc, path, query, fragment))


def derive_cache_key(
    normalized_url: str,
    fmt: CaptureFormat,
    length: int | None = None,
) -> str:
    fields = [normalized_url, fmt.value]
    if fmt.requires_length:
        fields.append("" if length is None else str(length))
    digest = hashlib.sha1(KEY_SEPARATOR.join(fields).encode("utf-8"))
    return digest.hexdigest()


def cache_key_for(request: CaptureRequest) -> str:
    return derive_cache_key(request.url, request.format, request.length)


def _slashes_before_query(url: str) -> str:
    end = len(url)
    for marker in "?#":
        index = url.find(marker)
        if index != -1:
            end = min(end, index)
    return url[:end].replace("\\", "/") + url[end:]


def _remove_dot_segments(path: str) -> str:
    if not path:
        return "/"
    segments = path.split("/")[1:]
    output: list[str] = []
    for segment in segments:
        lowered = segment.lower()
        if lowered in _SINGLE_DOT:
            continue
        if lowered in _DOUBLE_DOT:
            if output:
                output.pop()
            continue
        output.append(segment)
    # "/a/b/.." keeps the trailing slash of the directory it resolves to.
    if segments and segments[-1].lower() in _SINGLE_DOT | _DOUBLE_DOT:
        output.append("")
    return "/" + "/".join(output)


def _canonical_host(hostname: str) -> str:
    if ":" in hostname:
        try:
            ipaddress.IPv6Address(hostname.split("%", 1)[0])
        except ValueError as exc:
            raise InvalidUrlError() from exc
        return f"[{hostname}]"
    try:
        ascii_host = hostname.encode("idna").decode("ascii").lower()
    except UnicodeError as exc:
        raise InvalidUrlError() from exc
    if not _HOST_PATTERN.match(ascii_host):
        raise InvalidUrlError()
    return ascii_host
