"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Reconciliation requests fail for a small, fixed set of input reasons, and
callers (HTTP handlers, CLI tools, schedulers) need to map each one to a
different response.  Matching on message text is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        report = service.reconcile(request, authorized_store_ids=scope)
    except InvalidDateRangeError as e:
        respond(400, code=e.code, from_date=e.from_date, to_date=e.to_date)
    except NoStoresInScopeError as e:
        respond(403, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- ReconciliationInputError
    |   +-- InvalidDateFormatError
    |   +-- InvalidDateRangeError
    |   +-- NoStoresInScopeError
    |   +-- InvalidStoreSelectionError
    |
    +-- PolicyConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                       | When Raised
-----------|----------------------------|------------------------------------------
Input      | INVALID_DATE_FORMAT        | Date string is not YYYY-MM-DD
           | INVALID_DATE_RANGE         | to < from, or as_of outside [from, to]
           | NO_STORES_IN_SCOPE         | Caller has no authorized stores
           | INVALID_STORE_SELECTION    | Explicit store not in the authorized set
-----------|----------------------------|------------------------------------------
Config     | POLICY_CONFIG_ERROR        | Policy file missing, malformed or invalid

All input errors are raised before any row is fetched or any engine runs.
They are reported verbatim: no retry, no partial result.  Once inputs are
validated the engines cannot fail on data; bad durations degrade to zero
and are reported as data-quality notices instead.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Input validation exceptions


class ReconciliationInputError(PayrollKernelError):
    """Base exception for reconciliation request validation errors."""

    code: str = "RECONCILIATION_INPUT_ERROR"


class InvalidDateFormatError(ReconciliationInputError):
    """A business date was not a valid YYYY-MM-DD calendar date."""

    code: str = "INVALID_DATE_FORMAT"

    def __init__(self, value: object, field: str = "date"):
        self.value = value
        self.field = field
        super().__init__(f"{field} must be YYYY-MM-DD, got {value!r}")


class InvalidDateRangeError(ReconciliationInputError):
    """Period bounds are inverted, or as_of falls outside the period."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, from_date: str, to_date: str, as_of: str | None = None):
        self.from_date = from_date
        self.to_date = to_date
        self.as_of = as_of
        if as_of is None:
            message = f"to ({to_date}) must not be before from ({from_date})"
        else:
            message = (
                f"as_of ({as_of}) must be within the selected date range "
                f"({from_date} to {to_date})"
            )
        super().__init__(message)


class NoStoresInScopeError(ReconciliationInputError):
    """The caller is not authorized for any store."""

    code: str = "NO_STORES_IN_SCOPE"

    def __init__(self):
        super().__init__("No managed stores.")


class InvalidStoreSelectionError(ReconciliationInputError):
    """An explicit store filter is outside the caller's authorized stores."""

    code: str = "INVALID_STORE_SELECTION"

    def __init__(self, store_id: str):
        self.store_id = store_id
        super().__init__(f"Invalid store selection: {store_id}")


# Configuration exceptions


class PolicyConfigError(PayrollKernelError):
    """Reconciliation policy file could not be loaded or failed validation."""

    code: str = "POLICY_CONFIG_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid reconciliation policy {path}: {reason}")
