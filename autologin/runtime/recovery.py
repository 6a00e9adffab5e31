"""Bounded retry policy for recoverable form errors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autologin.config.loader import RetryConfig
    from autologin.errors import RecoverableFormError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for full form resubmissions.

    ``max_form_retries=None`` means no cap.
    """

    max_form_retries: int | None = 5

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(max_form_retries=config.max_form_retries)


class FormRetryBudget:
    """Per-attempt counter that decides whether another resubmission is allowed."""

    def __init__(self, policy: RetryPolicy) -> None:
        self._policy = policy
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    def allow(self, error: RecoverableFormError) -> bool:
        """Consume one retry for ``error`` if the budget allows it."""
        budget = self._policy.max_form_retries
        if budget is not None and self._attempts >= budget:
            logger.error(
                "[RECOVERY] Form retry budget exhausted (%s/%s): %s",
                self._attempts,
                budget,
                error.message,
            )
            return False

        self._attempts += 1
        logger.warning(
            "[RECOVERY] Resubmitting login form (%s/%s): %s",
            self._attempts,
            "unbounded" if budget is None else budget,
            error.message,
        )
        return True
