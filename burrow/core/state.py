from enum import Enum


class TurnOutcome(Enum):
    FINAL = "final"
    PROVIDER_ERROR = "provider_error"
    MAX_ITERATIONS = "max_iterations"
