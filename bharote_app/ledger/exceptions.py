"""Error taxonomy for the vote ledger.

Eligibility errors are terminal for a request: the caller has to change
something (verify, use another identity) before asking again. Concurrency
conflicts are transient and retried inside ``cast_vote``; once the retry budget
is spent they surface as ``LedgerBusyError``. Integrity violations are not
exceptions at all: the chain verifier reports them as values.
"""


class LedgerError(Exception):
    pass


class EligibilityError(LedgerError):
    code: str = "ineligible"


class NotRegisteredError(EligibilityError):
    code = "not_registered"


class NotVerifiedError(EligibilityError):
    code = "not_verified"


class AlreadyVotedError(EligibilityError):
    code = "already_voted"


class DuplicateDeviceError(EligibilityError):
    code = "duplicate_device"


class DuplicateContactError(EligibilityError):
    code = "duplicate_contact"


class ConcurrencyConflictError(LedgerError):
    pass


class SequenceConflictError(ConcurrencyConflictError):
    pass


class DigestTipConflictError(ConcurrencyConflictError):
    pass


class VoterConflictError(ConcurrencyConflictError):
    pass


class LedgerBusyError(LedgerError):
    """Raised after the commit retry budget is exhausted. Safe to retry."""


class InvalidOptionError(LedgerError):
    pass


class RegistrationError(LedgerError):
    pass


class InvalidFingerprintError(LedgerError):
    pass
