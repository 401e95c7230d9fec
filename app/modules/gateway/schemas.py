from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class RequestTarget:
    """A client request that passed URL validation and both guards."""

    url: str
    requested_filename: Optional[str] = None


class ResolveResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ok: bool
    url: Optional[str] = None
    filename: Optional[str] = None
    content_type: Optional[str] = Field(default=None, serialization_alias="contentType")
    byte_length: Optional[int] = Field(default=None, serialization_alias="bytes")
    error: Optional[str] = None

    @classmethod
    def unsupported(cls, content_type: str, message: str) -> "ResolveResult":
        return cls(ok=False, error=message, content_type=content_type)

    def model_dump(self, *args, **kwargs) -> Dict[str, Any]:  # type: ignore[override]
        kwargs.setdefault("by_alias", True)
        # Only the fields a variant sets end up on the wire; `bytes: null` stays.
        kwargs.setdefault("exclude_unset", True)
        return super().model_dump(*args, **kwargs)
