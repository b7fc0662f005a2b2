"""
Pet Sitter error taxonomy.

Only StartupFailure and ConfigError are fatal. FetchError is expected noise
from flaky RPC reads; SubmissionError is counted and reported by the executor.
"""


class SitterError(Exception):
    """Base class for all pet sitter errors."""
    pass


class ConfigError(SitterError):
    """Missing or malformed environment configuration."""
    pass


class StartupFailure(SitterError):
    """The system is unusable: no connectivity or nothing to pet."""
    pass


class FetchError(SitterError):
    """A single on-chain read failed (enumeration or per-gotchi detail)."""
    pass


class SubmissionError(SitterError):
    """An interact transaction could not be built, sent, or confirmed."""
    pass
