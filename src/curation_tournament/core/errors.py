"""Exception taxonomy for curation tournaments.

Errors fall into five families:

- Configuration: bad config files or disabled features.
- Validation: bad input to ``create_tournament``; never retried.
- State: the caller asked for a transition the session cannot take.
- Concurrency: another writer touched the session first; re-read and retry.
- Judge: a pairwise comparison failed or timed out; retried per comparison.
"""

from __future__ import annotations

from typing import Any


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class FeatureDisabledError(ConfigurationError):
    """Error when a feature flag turns off the requested operation."""

    def __init__(self, feature: str) -> None:
        self.feature = feature
        super().__init__(
            f"{feature} is not enabled",
            f"Set features.{feature} to true in your configuration.",
        )


class TournamentError(Exception):
    """Base exception for tournament operations.

    Attributes:
        message: Human-readable description.
        session_id: Session the error relates to, if known.
        action: Attempted action (``create``, ``advance``, ...), if known.
        context: Extra facts needed to build a corrective retry.
        suggestion: Optional hint for the caller.
    """

    def __init__(
        self,
        message: str,
        *,
        session_id: str | None = None,
        action: str | None = None,
        context: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.message = message
        self.session_id = session_id
        self.action = action
        self.context = context or {}
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.session_id:
            parts.append(f"session={self.session_id}")
        if self.action:
            parts.append(f"action={self.action}")
        for key, value in self.context.items():
            parts.append(f"{key}={value}")
        msg = " | ".join(parts)
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


# ==================== Validation ====================


class InvalidTournamentSize(TournamentError):
    """Work count is below four or not a power of two."""

    def __init__(self, count: int, nearest: list[int]) -> None:
        self.count = count
        self.nearest = nearest
        sizes = ", ".join(str(n) for n in nearest)
        super().__init__(
            f"Tournament requires a power of 2 number of works (4, 8, 16, ...). Got {count}",
            action="create",
            context={"count": count, "nearest_valid_sizes": nearest},
            suggestion=f"Use {sizes} works.",
        )


class InvalidWorkId(TournamentError):
    """A work ID is blank, duplicated, or not part of the tournament."""

    def __init__(
        self,
        work_id: str,
        reason: str,
        *,
        session_id: str | None = None,
        action: str = "create",
    ) -> None:
        self.work_id = work_id
        super().__init__(
            f"Invalid work ID {work_id!r}: {reason}",
            session_id=session_id,
            action=action,
        )


class UnknownCuratorError(TournamentError):
    """Curator is not one of the built-in judging personas."""

    def __init__(self, curator: str, known: list[str], action: str | None = None) -> None:
        self.curator = curator
        super().__init__(
            f"Unknown curator {curator!r}",
            action=action,
            context={"known_curators": known},
            suggestion=f"Pick one of: {', '.join(known)}.",
        )


# ==================== State ====================


class SessionNotFound(TournamentError):
    """No session is stored under the given ID."""

    def __init__(self, session_id: str, action: str | None = None) -> None:
        super().__init__("Tournament session not found", session_id=session_id, action=action)


class InvalidTransition(TournamentError):
    """The session's status does not allow the attempted action."""

    def __init__(self, session_id: str, action: str, status: str) -> None:
        self.status = status
        super().__init__(
            f"Cannot {action} a tournament in status {status}",
            session_id=session_id,
            action=action,
            context={"status": status},
        )


class RoundNotReady(TournamentError):
    """A round still has brackets without a winner."""

    def __init__(
        self,
        session_id: str,
        round_number: int,
        unresolved: list[str],
        action: str = "advance",
    ) -> None:
        self.round_number = round_number
        self.unresolved = unresolved
        super().__init__(
            f"Round {round_number} has unresolved brackets",
            session_id=session_id,
            action=action,
            context={"round": round_number, "unresolved": unresolved},
            suggestion="Advance again to retry, or force a winner for each bracket.",
        )


# ==================== Concurrency ====================


class ConcurrentAdvanceConflict(TournamentError):
    """Another transition on the same session won the race."""

    def __init__(self, session_id: str, action: str | None = None) -> None:
        super().__init__(
            "Session was modified by a concurrent transition",
            session_id=session_id,
            action=action,
            suggestion="Re-fetch the session and retry the intended action.",
        )


# ==================== Judge ====================


class JudgeError(Exception):
    """A pairwise comparison failed. Retryable."""

    def __init__(self, message: str, bracket_id: str | None = None) -> None:
        self.bracket_id = bracket_id
        super().__init__(message)


class JudgeTimeoutError(JudgeError):
    """A pairwise comparison did not answer within the configured timeout."""
