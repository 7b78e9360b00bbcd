"""
Typed Exception Hierarchy for the ERP Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Ledger mutations fail for a small number of well-defined reasons, and the
calling layer has to map each one to a user-facing status.  Catching by
type (not by message text) keeps that mapping stable:

    try:
        journal.post_entry(entry_id, actor_id=actor)
    except UnbalancedEntryError as e:
        api_response(code=e.code, currency=e.currency,
                     debits=e.debits, credits=e.credits)
    except InvalidStateError as e:
        api_response(code=e.code, state=e.current_state)

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError
    |   +-- InvalidReferenceError
    |   +-- AccountHierarchyCycleError
    |
    +-- NotFoundError
    |
    +-- InvalidStateError
    |
    +-- UnbalancedEntryError
    |
    +-- ConcurrentModificationError
    |
    +-- ConstraintError
        +-- DuplicateCodeError
        +-- ReferencedEntityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                     | When Raised
-------------------------|----------------------------------------------------
VALIDATION_ERROR         | Malformed input: missing field, amount <= 0, bad enum
INVALID_REFERENCE        | Line/transaction names an unknown or inactive record
ACCOUNT_HIERARCHY_CYCLE  | Reparenting would make an account its own ancestor
NOT_FOUND                | Id/SKU/code does not exist or is soft-deleted
INVALID_STATE            | Operation forbidden from the entity's current state
UNBALANCED_ENTRY         | Debits != credits for some currency at posting
CONCURRENT_MODIFICATION  | Lost a race to post/update/void the same entry
CONSTRAINT_VIOLATION     | Removal/deactivation forbidden by history
DUPLICATE_CODE           | Unique code/SKU already taken
ENTITY_REFERENCED        | Delete attempted on a record referenced by history
IMMUTABILITY_VIOLATION   | Edit of a posted line or an inventory transaction

===============================================================================
DESIGN DECISIONS
===============================================================================

1. No error is retried inside the kernel.  Ledger mutations must not be
   blindly re-applied; a caller that receives ConcurrentModificationError
   re-reads current state and decides for itself.

2. Errors propagate.  session_scope() rolls the transaction back and
   re-raises, so a failed operation leaves no partial rows behind.

===============================================================================
"""


class LedgerError(Exception):
    """
    Base exception for all ERP kernel errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"


# Input validation


class ValidationError(LedgerError):
    """Malformed input: missing required field, non-positive amount, bad enum."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidReferenceError(ValidationError):
    """A line or transaction references a record that cannot be used."""

    code: str = "INVALID_REFERENCE"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"{entity_type} {entity_id} cannot be referenced: {reason}",
            field=f"{entity_type.lower()}_id",
        )


class AccountHierarchyCycleError(ValidationError):
    """Reparenting an account would create a cycle in the chart of accounts."""

    code: str = "ACCOUNT_HIERARCHY_CYCLE"

    def __init__(self, account_id: str, parent_id: str):
        self.account_id = account_id
        self.parent_id = parent_id
        super().__init__(
            f"Account {account_id} cannot be placed under {parent_id}: "
            "it would become its own ancestor",
            field="parent_id",
        )


# Lookup


class NotFoundError(LedgerError):
    """Referenced id, SKU or code does not exist or is soft-deleted."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Lifecycle


class InvalidStateError(LedgerError):
    """Operation attempted from a state that forbids it."""

    code: str = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        operation: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.operation = operation
        super().__init__(
            f"Cannot {operation} {entity_type} {entity_id} "
            f"in state {current_state}"
        )


class UnbalancedEntryError(LedgerError):
    """Journal entry debits do not equal credits for a currency."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Unbalanced entry in {currency}: debits={debits}, credits={credits}"
        )


# Concurrency


class ConcurrentModificationError(LedgerError):
    """Another transaction modified the entity first."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        detail = ""
        if expected_version is not None:
            detail = f" (expected version {expected_version}, found {actual_version})"
        super().__init__(
            f"{entity_type} {entity_id} was modified by another transaction{detail}"
        )


# Referential / history constraints


class ConstraintError(LedgerError):
    """Removal or change forbidden because history references the entity."""

    code: str = "CONSTRAINT_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Constraint violation on {entity_type} {entity_id}: {reason}")


class DuplicateCodeError(ConstraintError):
    """A unique business key (account code, SKU, warehouse code) is taken."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, entity_type: str, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(entity_type, value, f"{field} '{value}' already exists")


class ReferencedEntityError(ConstraintError):
    """Delete attempted on a record that ledger history still references."""

    code: str = "ENTITY_REFERENCED"


class ImmutabilityViolationError(ConstraintError):
    """
    Attempted to modify or delete an immutable record.

    Posted journal lines and all inventory transactions are immutable.
    """

    code: str = "IMMUTABILITY_VIOLATION"
