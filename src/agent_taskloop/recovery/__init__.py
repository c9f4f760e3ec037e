"""Retry recovery strategies and the escalation ladder."""

from agent_taskloop.config import RecoveryStrategyType

from .base import RecoveryStrategy
from .escalation import AttemptTarget, ladder_executors, resolve_attempt
from .fresh import FreshSession
from .resume import ResumeSession


def create_recovery_strategy(strategy_type: RecoveryStrategyType | str) -> RecoveryStrategy:
    """Factory function to create a recovery strategy from config."""
    mapping: dict[RecoveryStrategyType, type[RecoveryStrategy]] = {
        RecoveryStrategyType.RESUME_SESSION: ResumeSession,
        RecoveryStrategyType.FRESH_SESSION: FreshSession,
    }
    cls = mapping[RecoveryStrategyType(strategy_type)]
    return cls()
