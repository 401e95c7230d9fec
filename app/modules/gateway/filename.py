"""Display filename derivation for upstream responses.

Preference order: a well-formed ``Content-Disposition`` filename, then the
last non-empty path segment of the effective URL, then a timestamped
``download-<epoch millis>`` name. Each step returns ``None`` when it has
nothing usable, so the fallback chain is plain control flow.
"""

import re
import time
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit


_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_QUOTED = r'"(?:[\x20\x21\x23-\x5b\x5d-\x7e\x80-\xff]|\\[\x20-\x7e])*"'
_DISPOSITION_TYPE_RE = re.compile(rf"({_TOKEN})[\t ]*(?=;|$)")
_PARAM_RE = re.compile(rf";[\t ]*({_TOKEN})[\t ]*=[\t ]*({_TOKEN}|{_QUOTED})[\t ]*")
_QUOTED_PAIR_RE = re.compile(r"\\([\x00-\x7f])")
_EXT_VALUE_RE = re.compile(
    r"^([A-Za-z0-9!#$%&+\-^_`{}~]+)'(?:[A-Za-z]{2,3}(?:-[A-Za-z]{3}){0,3}|[A-Za-z]{4,8}|)'"
    r"((?:%[0-9A-Fa-f]{2}|[A-Za-z0-9!#$&+.^_`|~-])+)$"
)
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_HEX_ESCAPE_RE = re.compile(r"%[0-9A-Fa-f]{2}")
_TEXT_RE = re.compile(r"^[\x20-\x7e\x80-\xff]+$")
_NON_LATIN1_RE = re.compile(r"[^\x20-\x7e\xa0-\xff]")


def parse_disposition(header: str) -> Optional[Tuple[str, Dict[str, str]]]:
    """Parse a Content-Disposition value into ``(type, parameters)``.

    Returns ``None`` for anything outside the RFC 6266 grammar. Extended
    ``name*`` parameters are decoded and stored under their plain name,
    overriding the plain variant.
    """
    if not header:
        return None
    match = _DISPOSITION_TYPE_RE.match(header)
    if not match:
        return None
    disposition_type = match.group(1).lower()

    seen: List[str] = []
    params: Dict[str, str] = {}
    extended: Dict[str, str] = {}
    index = match.end()
    while index < len(header):
        param = _PARAM_RE.match(header, index)
        if not param:
            return None
        index = param.end()
        name = param.group(1).lower()
        value = param.group(2)
        if name in seen:
            return None
        seen.append(name)

        if name.endswith("*"):
            decoded = _decode_ext_value(value)
            if decoded is None:
                return None
            extended[name[:-1]] = decoded
            continue
        if value.startswith('"'):
            value = _QUOTED_PAIR_RE.sub(r"\1", value[1:-1])
        params[name] = value

    params.update(extended)
    return disposition_type, params


def _decode_ext_value(value: str) -> Optional[str]:
    match = _EXT_VALUE_RE.match(value)
    if not match:
        return None
    charset = match.group(1).lower()
    encoded = match.group(2)
    if charset == "utf-8":
        encoding = "utf-8"
    elif charset == "iso-8859-1":
        encoding = "latin-1"
    else:
        return None
    try:
        return unquote(encoded, encoding=encoding, errors="strict")
    except UnicodeDecodeError:
        return None


def filename_from_disposition(header: Optional[str]) -> Optional[str]:
    parsed = parse_disposition(header or "")
    if parsed is None:
        return None
    _, params = parsed
    return params.get("filename") or None


def filename_from_url(url: str) -> Optional[str]:
    """Last non-empty path segment of ``url``, percent-decoded."""
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    if not segments:
        return None
    last = segments[-1]
    if _BAD_ESCAPE_RE.search(last):
        return None
    try:
        decoded = unquote(last, errors="strict")
    except UnicodeDecodeError:
        return None
    return decoded or None


def fallback_filename() -> str:
    return f"download-{int(time.time() * 1000)}"


def pick_filename(content_disposition: Optional[str], final_url: str) -> str:
    """Resolve the display filename for an upstream response."""
    return (
        filename_from_disposition(content_disposition)
        or filename_from_url(final_url)
        or fallback_filename()
    )


def format_attachment(filename: str) -> str:
    """Render ``Content-Disposition: attachment`` for ``filename``.

    Names that are not plain ISO-8859-1 text get an ``filename*`` UTF-8
    parameter next to a ``?``-substituted ASCII-safe fallback.
    """
    name = filename.rsplit("/", 1)[-1]
    if not name:
        return "attachment"

    fallback = _NON_LATIN1_RE.sub("?", name)
    needs_extended = fallback != name or bool(_HEX_ESCAPE_RE.search(name))
    if _TEXT_RE.match(name) and not needs_extended:
        return f"attachment; filename={_quote_string(name)}"
    return (
        f"attachment; filename={_quote_string(fallback)}; "
        f"filename*=UTF-8''{quote(name, safe='')}"
    )


def _quote_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
