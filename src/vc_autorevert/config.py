"""Immutable configuration for monitoring and batch reverts."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from vc_autorevert.runtime.telemetry import env_flag, env_value

DEFAULT_REVERT_TIMEOUT = 0.2


class BudgetPolicy(str, Enum):
    """How a single revert pass is bounded."""

    TIMEOUT = "timeout"
    STOP_ON_INPUT = "stop_on_input"


@dataclass(frozen=True, slots=True)
class RevertBudget:
    """Bound for one revert pass.

    Under ``TIMEOUT`` the pass stops once ``timeout`` seconds have elapsed;
    under ``STOP_ON_INPUT`` it stops as soon as interactive input is pending.
    Exactly one policy applies to a pass.
    """

    policy: BudgetPolicy = BudgetPolicy.TIMEOUT
    timeout: float = DEFAULT_REVERT_TIMEOUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "policy", BudgetPolicy(self.policy))
        if self.timeout < 0:
            raise ValueError("timeout cannot be negative")

    @classmethod
    def seconds(cls, timeout: float) -> "RevertBudget":
        return cls(BudgetPolicy.TIMEOUT, timeout)

    @classmethod
    def stop_on_input(cls) -> "RevertBudget":
        return cls(BudgetPolicy.STOP_ON_INPUT)


@dataclass(frozen=True, slots=True)
class AutoRevertConfig:
    """Mode flags evaluated once per repository operation.

    ``generic_revert``
        A host-wide "revert every buffer" mode is active. Per-file monitoring
        is then redundant and never enabled.
    ``local_mode``
        Per-file monitoring of repository buffers is enabled.
    ``immediate``
        Revert affected buffers right after a Git operation instead of
        waiting for the host's polling cycle.
    ``tracked_only``
        Only monitor files registered in version control.
    """

    generic_revert: bool = False
    local_mode: bool = True
    immediate: bool = True
    tracked_only: bool = True
    budget: RevertBudget = RevertBudget()

    @classmethod
    def from_env(cls, **overrides: object) -> "AutoRevertConfig":
        base = cls()
        budget = base.budget
        if env_flag("STOP_ON_INPUT", False):
            budget = RevertBudget.stop_on_input()
        else:
            raw_timeout = env_value("BUDGET")
            if raw_timeout:
                budget = RevertBudget.seconds(float(raw_timeout))
        config = cls(
            generic_revert=env_flag("GENERIC", base.generic_revert),
            local_mode=env_flag("LOCAL_MODE", base.local_mode),
            immediate=env_flag("IMMEDIATE", base.immediate),
            tracked_only=env_flag("TRACKED_ONLY", base.tracked_only),
            budget=budget,
        )
        return replace(config, **overrides) if overrides else config

    def with_budget(
        self, *, timeout: Optional[float] = None, stop_on_input: bool = False
    ) -> "AutoRevertConfig":
        if stop_on_input:
            return replace(self, budget=RevertBudget.stop_on_input())
        if timeout is None:
            return self
        return replace(self, budget=RevertBudget.seconds(timeout))


__all__ = [
    "AutoRevertConfig",
    "BudgetPolicy",
    "DEFAULT_REVERT_TIMEOUT",
    "RevertBudget",
]
