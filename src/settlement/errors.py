"""Settlement error taxonomy.

Every failure aborts the whole call it occurs in. Nothing in the core
retries or recovers locally; the caller (sequencer, operator, CLI)
decides what to do with the reason carried by the exception.
"""

from __future__ import annotations

from typing import Optional


class SettlementError(Exception):
    """Base class for every condition that aborts a settlement call."""


class Unauthorized(SettlementError):
    """Caller is not an authorized sequencer."""

    def __init__(self, caller: str) -> None:
        super().__init__(f"Caller {caller} is not an authorized sequencer")
        self.caller = caller


# ------------------------------------------------------------------
# Initialization
# ------------------------------------------------------------------

class InitializationError(SettlementError):
    """Raised when the one-time initialization is misused."""


class AlreadyInitialized(InitializationError):
    def __init__(self) -> None:
        super().__init__("Proposer is already initialized")


class InvalidAddress(InitializationError):
    """An address supplied to initialization is malformed, zero, or self."""

    def __init__(self, field: str, value: object, reason: str = "") -> None:
        message = f"Invalid address for {field}: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.field = field
        self.value = value


class BypassNotPermitted(InitializationError):
    """A verifier binding is disabled outside development mode."""

    def __init__(self, backend: str) -> None:
        super().__init__(
            f"Verifier {backend} cannot be disabled: proposer is not in dev mode"
        )
        self.backend = backend


# ------------------------------------------------------------------
# Sequencing
# ------------------------------------------------------------------

class SequencingError(SettlementError):
    """Raised when a commit or verify breaks counter ordering."""


class OutOfOrderCommit(SequencingError):
    def __init__(self, height: int, expected: int) -> None:
        super().__init__(
            f"Cannot commit block {height}: next committable block is {expected}"
        )
        self.height = height
        self.expected = expected


class DuplicateCommit(OutOfOrderCommit):
    """A re-commit of an already committed height.

    Also an OutOfOrderCommit: the height is never the next committable one.
    """

    def __init__(self, height: int, expected: Optional[int] = None) -> None:
        SequencingError.__init__(self, f"Block {height} is already committed")
        self.height = height
        self.expected = expected


class OutOfOrderVerify(SequencingError):
    def __init__(self, height: int, expected: int) -> None:
        super().__init__(
            f"Cannot verify block {height}: next verifiable block is {expected}"
        )
        self.height = height
        self.expected = expected


class UncommittedBlock(SequencingError):
    def __init__(self, height: int) -> None:
        super().__init__(f"Block {height} has not been committed")
        self.height = height


# ------------------------------------------------------------------
# Collaborators
# ------------------------------------------------------------------

class DepositMismatch(SettlementError):
    """Claimed deposit rolling hash disagrees with the ledger."""

    def __init__(self, supplied: bytes, expected: Optional[bytes]) -> None:
        shown = "0x" + expected.hex() if expected is not None else "unavailable"
        super().__init__(
            f"Deposit rolling hash 0x{supplied.hex()} does not match "
            f"ledger value {shown}"
        )
        self.supplied = supplied
        self.expected = expected


class ProofRejected(SettlementError):
    """An enabled verifier backend did not accept its proof."""

    def __init__(self, backend: str, reason: str = "") -> None:
        message = f"Proof rejected by {backend} verifier"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.backend = backend
        self.reason = reason


class LedgerError(SettlementError):
    """Raised by a deposit ledger adapter when an operation is impossible."""


class VerificationFailed(SettlementError):
    """Raised by a verifier adapter when a proof does not check out."""


class ConfigError(ValueError):
    """Raised when settings are missing or malformed."""
