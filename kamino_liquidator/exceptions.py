"""Exception taxonomy for the liquidator."""


class LiquidatorError(Exception):
    """Base exception for all liquidator errors."""


class ConfigError(LiquidatorError):
    """Raised for missing or invalid configuration and credentials."""


class ProviderError(LiquidatorError):
    """Raised when the RPC endpoint is unreachable or returns an error."""


class AccountNotFoundError(ProviderError):
    """Raised when a single-account read finds no account at the key."""


class DecodeError(LiquidatorError):
    """Raised when account bytes cannot be decoded."""


class NotThisType(DecodeError):
    """Raised when account bytes belong to a different account type."""


class BuildError(LiquidatorError):
    """Raised when a liquidation instruction cannot be built."""


class NoBorrowsError(BuildError):
    """Raised when a freshly read obligation has no borrows."""


class NoDepositsError(BuildError):
    """Raised when a freshly read obligation has no deposits."""


class StaleCandidateError(BuildError):
    """Raised when a freshly read obligation no longer matches its candidate."""


class AssemblyError(LiquidatorError):
    """Raised when a transaction cannot be compiled or signed."""


class SubmissionError(LiquidatorError):
    """Raised when the relay rejects a bundle or cannot be reached."""
