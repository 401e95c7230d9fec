import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import UnsupportedContentType
from .filename import format_attachment, pick_filename
from .policy import PolicyConfig, is_allowed_mime, validate_target
from .schemas import RequestTarget, ResolveResult
from .upstream import UpstreamClient, UpstreamStream


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class DownloadPlan:
    stream: UpstreamStream
    headers: Dict[str, str]


def build_target(url: Optional[str], policy: PolicyConfig, filename: Optional[str] = None) -> RequestTarget:
    """Validate the client-supplied URL before anything touches the network."""
    return RequestTarget(url=validate_target(url or "", policy), requested_filename=filename or None)


async def resolve(target: RequestTarget, client: UpstreamClient, policy: PolicyConfig) -> ResolveResult:
    """Probe the resource with HEAD and describe it without transferring the body.

    A disallowed content type is an ordinary negative result, not an error.
    """
    probe = await client.probe(target.url, policy)

    if not is_allowed_mime(probe.mime_type, policy):
        logger.info("Resolve rejected content-type=%r for url=%s", probe.mime_type, probe.final_url)
        return ResolveResult.unsupported(probe.mime_type, UnsupportedContentType.message)

    return ResolveResult(
        ok=True,
        url=probe.final_url,
        filename=pick_filename(probe.content_disposition, probe.final_url),
        content_type=probe.mime_type,
        byte_length=probe.byte_length,
    )


async def open_download(target: RequestTarget, client: UpstreamClient, policy: PolicyConfig) -> DownloadPlan:
    """Open the upstream GET and compute the relabeled response headers.

    Any upstream status is proxied as-is. The content-type gate only
    applies when the policy enforces it on downloads.
    """
    stream = await client.open_stream(target.url, policy)
    probe = stream.probe

    if policy.enforce_mime_on_download and not is_allowed_mime(probe.mime_type, policy):
        stream.close()
        raise UnsupportedContentType(probe.mime_type)

    filename = target.requested_filename or pick_filename(probe.content_disposition, probe.final_url)
    headers = {
        "Content-Type": probe.mime_type or DEFAULT_CONTENT_TYPE,
        "Content-Disposition": format_attachment(filename),
    }
    return DownloadPlan(stream=stream, headers=headers)
