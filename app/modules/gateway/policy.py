"""URL acceptance and content-type policy.

Every check here is a pure function of its inputs and the immutable
:class:`PolicyConfig`; nothing touches the network.
"""

import re
from dataclasses import dataclass
from typing import Annotated, Iterable, Tuple

from pydantic import AnyUrl, TypeAdapter, UrlConstraints, ValidationError

from .errors import DomainNotAllowed, InvalidURL, SchemeNotAllowed


ALLOWED_MIME_PREFIXES: Tuple[str, ...] = ("video/", "audio/", "image/", "application/pdf")
DEFAULT_MAX_REDIRECTS = 5

# Host is required, a top-level domain is not (internal and test hostnames parse).
_TargetUrl = Annotated[AnyUrl, UrlConstraints(host_required=True)]
_url_adapter = TypeAdapter(_TargetUrl)
# The URL parser repairs "https:host", "https:/host" and backslashes; refuse those up front.
_ABSOLUTE_PREFIX_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


@dataclass(frozen=True)
class PolicyConfig:
    allowlist: Tuple[str, ...] = ()
    mime_prefixes: Tuple[str, ...] = ALLOWED_MIME_PREFIXES
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    enforce_mime_on_download: bool = False

    @classmethod
    def from_allowlist(cls, raw: str, **kwargs) -> "PolicyConfig":
        """Build a policy from a comma separated domain list."""
        return cls(allowlist=parse_allowlist(raw), **kwargs)


def parse_allowlist(raw: str) -> Tuple[str, ...]:
    entries: Iterable[str] = (item.strip() for item in (raw or "").split(","))
    return tuple(entry for entry in entries if entry)


def validate_url(candidate: str) -> AnyUrl:
    """Return the parsed absolute URL or raise :class:`InvalidURL`."""
    if not candidate or any(ch.isspace() for ch in candidate):
        raise InvalidURL(detail="empty or whitespace-bearing url")
    if "\\" in candidate or not _ABSOLUTE_PREFIX_RE.match(candidate):
        raise InvalidURL(detail="url is not in scheme://host form")
    try:
        url = _url_adapter.validate_python(candidate)
    except ValidationError as exc:
        raise InvalidURL(detail=str(exc)) from exc
    if not url.host:
        raise InvalidURL(detail="url has no host")
    return url


def is_https(url: AnyUrl) -> bool:
    return url.scheme == "https"


def check_scheme(url: AnyUrl) -> None:
    if not is_https(url):
        raise SchemeNotAllowed(detail=f"scheme {url.scheme!r} rejected")


def is_allowed_domain(url: AnyUrl, policy: PolicyConfig) -> bool:
    # Exact, case-sensitive comparison on the parsed hostname.
    if not policy.allowlist:
        return True
    host = url.host or ""
    return any(host == domain or host.endswith(f".{domain}") for domain in policy.allowlist)


def check_domain(url: AnyUrl, policy: PolicyConfig) -> None:
    if not is_allowed_domain(url, policy):
        raise DomainNotAllowed(detail=f"host {url.host!r} not in allowlist")


def validate_target(candidate: str, policy: PolicyConfig) -> str:
    """Run the validator and both guards, returning the normalized URL string.

    Used for the client-supplied URL and again for every redirect hop.
    """
    url = validate_url(candidate)
    check_scheme(url)
    check_domain(url, policy)
    return str(url)


def is_allowed_mime(content_type: str, policy: PolicyConfig) -> bool:
    # Prefix match: "application/pdf+foo" and "image/png; q=1" both pass.
    if not content_type:
        return False
    return content_type.startswith(policy.mime_prefixes)
