"""Navigation rules for moving through the questionnaire."""

from ecotrail.navigation.eligibility import (
    BlockReason,
    EligibilityResult,
    can_advance,
    evaluate_eligibility,
    is_variable_complete,
    value_exceeds_maximum,
    value_limit_message,
)

__all__ = [
    "BlockReason",
    "EligibilityResult",
    "can_advance",
    "evaluate_eligibility",
    "is_variable_complete",
    "value_exceeds_maximum",
    "value_limit_message",
]
