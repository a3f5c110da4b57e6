"""
Default settings for the refiner local search.

The module-level constants are the defaults; `LocalSearchConfig` bundles them
so a caller can override individual values for one dispatcher without
touching the globals.
"""

import random
from dataclasses import dataclass

# Module-level RNG used when the caller does not supply one.
RANDOM = random.Random()

# Number of random probes used to decide whether a string influences fitness.
LOCAL_SEARCH_PROBES = 10

# Code points tried by character replacement and insertion: [9, 127).
MIN_CODE_POINT = 9
MAX_CODE_POINT = 127

# Shape of the fresh strings produced by the "randomize" probe.
RANDOM_STRING_LENGTH = 20
RANDOM_CHAR_MIN = 32

# A probe whose has_changed() result carries this sign becomes the new baseline.
# -1 matches DefaultObjective, which reports a strictly better fitness as -1.
PROBE_ACCEPT_SIGN = -1

# Decimal places explored by the float search after the integral climb.
FLOAT_PRECISION = 7

# Upper bound for the doubling step of the numeric hill climb.
MAX_INTEGER_STEP = 2**64

# Largest valid Unicode code point, used to clamp character searches.
MAX_UNICODE_CODE_POINT = 0x10FFFF

INTEGER_BOUNDARY_VALUES = (
    0,
    1,
    -1,
    2**31 - 1,  # Max signed 32-bit int
    -(2**31),  # Min signed 32-bit int
    2**63 - 1,  # Max signed 64-bit int
    -(2**63),  # Min signed 64-bit int
)

DEFAULT_BUDGET_TYPE = "time"
DEFAULT_BUDGET_LIMIT = 5.0


@dataclass(frozen=True)
class LocalSearchConfig:
    """Tunable parameters shared by every local search strategy."""

    probes: int = LOCAL_SEARCH_PROBES
    min_code_point: int = MIN_CODE_POINT
    max_code_point: int = MAX_CODE_POINT
    random_string_length: int = RANDOM_STRING_LENGTH
    random_char_min: int = RANDOM_CHAR_MIN
    probe_accept_sign: int = PROBE_ACCEPT_SIGN
    float_precision: int = FLOAT_PRECISION
    max_integer_step: int = MAX_INTEGER_STEP
    integer_boundary_values: tuple[int, ...] = INTEGER_BOUNDARY_VALUES

    def __post_init__(self) -> None:
        if self.probe_accept_sign not in (-1, 1):
            raise ValueError(
                f"probe_accept_sign must be -1 or 1, got {self.probe_accept_sign}"
            )
        if not 0 <= self.min_code_point < self.max_code_point:
            raise ValueError(
                f"Empty code point range [{self.min_code_point}, {self.max_code_point})"
            )
        if not self.min_code_point <= self.random_char_min < self.max_code_point:
            raise ValueError(
                f"random_char_min {self.random_char_min} is outside "
                f"[{self.min_code_point}, {self.max_code_point})"
            )
        if self.probes < 0:
            raise ValueError(f"probes must be non-negative, got {self.probes}")
        if self.float_precision < 0:
            raise ValueError(
                f"float_precision must be non-negative, got {self.float_precision}"
            )
        if self.random_string_length < 0:
            raise ValueError(
                f"random_string_length must be non-negative, got {self.random_string_length}"
            )
        if self.max_integer_step < 1:
            raise ValueError(f"max_integer_step must be positive, got {self.max_integer_step}")


DEFAULT_CONFIG = LocalSearchConfig()
