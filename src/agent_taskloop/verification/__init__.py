"""Post-attempt checks: shell verification commands and the AI review phase."""

from .base import ValidationResult, all_passed, first_failure
from .commands import format_verification_error, run_validations
from .review import ReviewConfig, ReviewResult, execute_review_phase
