"""
Typed Exception Hierarchy for the Budget Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The HTTP layer has to turn every failure into the right client response:
a field-level validation list, a 403, a 409.  Parsing message strings for
that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.approve(actor, allocation_id)
    except InvalidTransitionError as e:
        api_response(409, code=e.code, status=e.current_status)
    except AuthorizationError as e:
        api_response(403, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BudgetKernelError (base)
    |
    +-- ValidationError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- UnknownWorkflowActionError
    |
    +-- AuthorizationError
    |   +-- RoleNotPermittedError
    |   +-- ResourceAccessError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_FAILED           | Missing/invalid fields on input
----------------|-----------------------------|-----------------------------------------
Workflow        | INVALID_TRANSITION          | Action not allowed from current status
                | UNKNOWN_WORKFLOW_ACTION     | Action name not defined by the workflow
----------------|-----------------------------|-----------------------------------------
Authorization   | ROLE_NOT_PERMITTED          | Actor's role lacks the capability
                | RESOURCE_NOT_ACCESSIBLE     | Row missing or owned by another tenant
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Concurrent modification detected
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying an append-only record

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Exceeding a budget threshold is NOT an error.  It is a normal outcome
   carried in ``BudgetImpactResult`` / ``BudgetVarianceResult``.

2. ResourceAccessError is raised both for a row that does not exist and for
   a row that belongs to another tenant, with the same message.  Callers
   cannot probe for the existence of other tenants' data.  The difference
   is only visible in the kernel's own logs.

3. Validation errors are never retried.  ConcurrencyError is the only
   category a caller may safely retry.
"""


class BudgetKernelError(Exception):
    """
    Base exception for all budget kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BUDGET_KERNEL_ERROR"


# Validation


class ValidationError(BudgetKernelError):
    """
    Input failed validation.

    ``field_errors`` is a list of ``{"field": ..., "message": ...}`` dicts,
    one per offending field, suitable for a 400 response body.
    """

    code: str = "VALIDATION_FAILED"

    def __init__(self, field_errors: list[dict[str, str]]):
        self.field_errors = field_errors
        fields = ", ".join(e["field"] for e in field_errors)
        super().__init__(f"Validation failed: {len(field_errors)} error(s) [{fields}]")

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


# Workflow-related exceptions


class WorkflowError(BudgetKernelError):
    """Base exception for approval workflow errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Action is not allowed from the record's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        action: str,
        allowed_from: tuple[str, ...] = (),
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.action = action
        self.allowed_from = allowed_from
        expected = " or ".join(allowed_from) if allowed_from else "no state"
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id}: status is "
            f"'{current_status}', {action} requires {expected}"
        )


class UnknownWorkflowActionError(WorkflowError):
    """Action name is not defined by the workflow."""

    code: str = "UNKNOWN_WORKFLOW_ACTION"

    def __init__(self, workflow_name: str, action: str):
        self.workflow_name = workflow_name
        self.action = action
        super().__init__(f"Workflow {workflow_name} has no action '{action}'")


# Authorization-related exceptions


class AuthorizationError(BudgetKernelError):
    """Base exception for authorization failures (wrong role, wrong tenant)."""

    code: str = "AUTHORIZATION_ERROR"


class RoleNotPermittedError(AuthorizationError):
    """Actor's role does not carry the capability the operation needs."""

    code: str = "ROLE_NOT_PERMITTED"

    def __init__(self, role: str, capability: str):
        self.role = role
        self.capability = capability
        super().__init__(f"Role '{role}' is not permitted to perform {capability}")


class ResourceAccessError(AuthorizationError):
    """
    Resource is not accessible to the requesting tenant.

    Raised for missing rows and for rows owned by another tenant alike.
    The message never says which.
    """

    code: str = "RESOURCE_NOT_ACCESSIBLE"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} is not accessible")


# Concurrency-related exceptions


class ConcurrencyError(BudgetKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability-related exceptions


class ImmutabilityError(BudgetKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record (audit logs)."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
