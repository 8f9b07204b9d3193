"""Invocation descriptor passed explicitly into command-service calls.

Both ingress paths call the same service methods. What differs between them
(where the command came from, which correlation ids to stamp on the recorded
events, and how long the caller is willing to wait) travels in an
:class:`InvocationContext` argument instead of ambient request state.

Usage:
    # REST handler
    ctx = InvocationContext.rest(correlation_id=request_id, user_id=user)
    await service.create_fabric(ctx, code="FAB1", name="Cotton")

    # Inbound event adapter
    ctx = InvocationContext.event(
        correlation_id=envelope.correlation_id,
        causation_id=envelope.event_id,
    ).with_timeout(30.0)
"""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from enum import StrEnum

from textura.foundation.domain.exceptions import DomainError


class CommandSource(StrEnum):
    """Ingress path a command arrived through."""

    REST = "REST"
    EVENT = "EVENT"


class DeadlineExceededError(DomainError):
    """Raised when a command's deadline passes before it completes.

    Raised before the state write, this means the command had no effect.
    """

    error_code: str = "DEADLINE_EXCEEDED"

    def __init__(self, stage: str) -> None:
        super().__init__("Command deadline exceeded", context={"stage": stage})
        self.stage = stage


@dataclass(frozen=True, slots=True)
class InvocationContext:
    """Immutable description of one command invocation.

    Attributes:
        source: Ingress path. Only REST-originated commands are forwarded to
            the outward publisher.
        correlation_id: Request or workflow id for tracing.
        causation_id: Id of the message that caused this command, if any.
        user_id: Acting user, if known.
        deadline: Absolute ``time.monotonic()`` value after which the command
            must not start its state write. ``None`` means no deadline.
    """

    source: CommandSource
    correlation_id: str = ""
    causation_id: str = ""
    user_id: str = ""
    deadline: float | None = None

    @classmethod
    def rest(cls, *, correlation_id: str = "", user_id: str = "") -> InvocationContext:
        return cls(source=CommandSource.REST, correlation_id=correlation_id, user_id=user_id)

    @classmethod
    def event(
        cls,
        *,
        correlation_id: str = "",
        causation_id: str = "",
        user_id: str = "",
    ) -> InvocationContext:
        return cls(
            source=CommandSource.EVENT,
            correlation_id=correlation_id,
            causation_id=causation_id,
            user_id=user_id,
        )

    @property
    def is_rest(self) -> bool:
        return self.source is CommandSource.REST

    def with_timeout(self, seconds: float | None) -> InvocationContext:
        """Return a copy whose deadline is ``seconds`` from now.

        ``None`` or a non-positive value leaves the context unchanged.
        """
        if not seconds or seconds <= 0:
            return self
        return dataclasses.replace(self, deadline=time.monotonic() + seconds)

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or ``None``."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check_deadline(self, stage: str) -> None:
        """Raise :class:`DeadlineExceededError` if the deadline has passed.

        Args:
            stage: Pipeline stage name recorded in the error context.
        """
        if self.expired:
            raise DeadlineExceededError(stage)
