"""Runtime retry policies."""

from autologin.runtime.recovery import FormRetryBudget, RetryPolicy

__all__ = ["FormRetryBudget", "RetryPolicy"]
