import re
import secrets
import time
from typing import Optional

_TRACE_ID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{24}$")


class TraceId:
    """
    Trace ID carried in the X-Trace-Id header:
    <8 hex epoch>-<24 hex random>[;parent=<span id>]
    """

    def __init__(self, root: str, parent: Optional[str] = None):
        self.root = root
        self.parent = parent

    @classmethod
    def generate(cls) -> "TraceId":
        """Generate a new Trace ID."""
        epoch_hex = f"{int(time.time()):08x}"
        unique_id = secrets.token_hex(12)  # 24 chars
        return cls(root=f"{epoch_hex}-{unique_id}")

    @classmethod
    def parse(cls, header: str) -> "TraceId":
        """Parse an X-Trace-Id header string."""
        root, _, rest = header.strip().partition(";")
        root = root.strip().lower()
        if not _TRACE_ID_PATTERN.match(root):
            raise ValueError(f"Invalid trace id: {header!r}")

        parent = None
        if rest:
            key, _, value = rest.partition("=")
            if key.strip().lower() == "parent" and value.strip():
                parent = value.strip()

        return cls(root=root, parent=parent)

    def to_root_id(self) -> str:
        """Return only the root ID."""
        return self.root

    def __str__(self) -> str:
        if self.parent:
            return f"{self.root};parent={self.parent}"
        return self.root
