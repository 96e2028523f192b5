from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class CallerIdentity:
    subject: str | None = None
    email: str | None = None
    scope: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.email or self.subject or self.scope or "anonymous"


ANONYMOUS = CallerIdentity()


@dataclass
class RequestContext:
    """Per-request state threaded through the generation pipeline.

    ``upload_path`` and ``staged_handle`` record the temporary artifacts the
    request owns; the pipeline finalizer removes whatever is set here.
    """

    request_id: str
    caller: CallerIdentity = ANONYMOUS
    upload_path: Path | None = None
    staged_handle: str | None = None
