"""Per-request context stored on ``request.state``."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestContext:
    """Minimal request context shared between middleware and handlers."""

    request_id: str
    method: str
    path: str
    metadata: dict[str, Any] = field(default_factory=dict)
