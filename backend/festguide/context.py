"""Call context passed through every notification operation.

Carries who is acting (for audit columns) and a cooperative cancellation flag
that long fan-outs check between pages and batches.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Principal:
    """The actor an operation is attributed to.

    Either a real user or a named system principal. System principals are
    created at the call site with a name describing what is acting, e.g.
    ``Principal.system("push-feedback")``.
    """
    user_id: Optional[int]
    system_name: Optional[str] = None

    @classmethod
    def for_user(cls, user_id: int) -> "Principal":
        return cls(user_id=user_id)

    @classmethod
    def system(cls, name: str) -> "Principal":
        if not name:
            raise ValueError("System principal requires a name")
        return cls(user_id=None, system_name=name)

    @property
    def is_system(self) -> bool:
        return self.system_name is not None

    @property
    def audit_tag(self) -> str:
        """Value written to created_by / modified_by columns."""
        if self.is_system:
            return f"system:{self.system_name}"
        return f"user:{self.user_id}"


@dataclass
class CallContext:
    """Principal plus cancellation for one logical operation."""
    principal: Principal
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @classmethod
    def for_user(cls, user_id: int) -> "CallContext":
        return cls(principal=Principal.for_user(user_id))

    @classmethod
    def system(cls, name: str) -> "CallContext":
        return cls(principal=Principal.system(name))

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def raise_if_cancelled(self) -> None:
        """Raise asyncio.CancelledError if cancellation was requested."""
        if self.cancel_event.is_set():
            raise asyncio.CancelledError("Operation cancelled")
