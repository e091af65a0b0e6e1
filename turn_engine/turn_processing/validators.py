from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from turn_engine.core.actions import ActionRegistry, RejectedAction, RejectionReason
from turn_engine.core.errors import InvalidActionError
from turn_engine.core.session import GameSession


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    session_id: str
    action_id: str


class TurnValidator(ABC):
    """A small, composable validation unit for an incoming action.

    Validators raise for caller bugs and return a RejectedAction for expected refusals.
    """

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, session: GameSession) -> RejectedAction | None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class KnownActionValidator(TurnValidator):
    """Unknown action ids are a presentation-layer bug, not a rejection."""

    actions: ActionRegistry

    def validate(self, *, ctx: ValidationContext, session: GameSession) -> RejectedAction | None:
        if ctx.action_id not in self.actions:
            raise InvalidActionError(ctx.action_id)
        return None


@dataclass(frozen=True, slots=True)
class EndedSessionValidator(TurnValidator):
    """Deny every action once the session is won or lost."""

    def validate(self, *, ctx: ValidationContext, session: GameSession) -> RejectedAction | None:
        if not session.is_running:
            return RejectedAction(
                ctx.action_id,
                RejectionReason.session_ended,
                f"Session has ended ({session.status.value})",
            )
        return None


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[TurnValidator, ...]

    def validate(self, *, ctx: ValidationContext, session: GameSession) -> RejectedAction | None:
        for v in self.validators:
            rejection = v.validate(ctx=ctx, session=session)
            if rejection is not None:
                return rejection
        return None


def default_pipeline(actions: ActionRegistry) -> ValidatorPipeline:
    # Unknown ids fail first: an invalid id is reported even against an ended session.
    return ValidatorPipeline(
        validators=(
            KnownActionValidator(actions=actions),
            EndedSessionValidator(),
        )
    )
