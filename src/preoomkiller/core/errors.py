"""
errors.py
- Failure types raised inside a reconciliation cycle.
- Each one maps to the scope it is contained in:
    - ConfigError        — startup only, the loop never starts
    - EnumerationFailure — aborts the current cycle, never the process
    - ThresholdInvalid   — skips one pod for the current cycle
    - MetricsUnavailable — skips one pod for the current cycle
"""


class PreoomkillerError(Exception):
    pass


class ConfigError(PreoomkillerError):
    pass


class EnumerationFailure(PreoomkillerError):
    pass


class ThresholdInvalid(PreoomkillerError):
    def __init__(self, raw, reason):
        self.raw = raw
        self.reason = reason
        super().__init__(f"invalid memory threshold {raw!r}: {reason}")


class MetricsUnavailable(PreoomkillerError):
    pass
