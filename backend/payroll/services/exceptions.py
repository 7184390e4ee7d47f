"""
Payroll engine exceptions.

Per-employee failures (InvalidCompensation) are recovered by the run
processor; everything else rejects the whole operation.
"""


class PayrollError(Exception):
    """Base class for payroll engine errors."""


class InvalidCompensation(PayrollError):
    """An employee's compensation structure cannot be used for payroll."""

    def __init__(self, employee_id, reason):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Invalid compensation for employee {employee_id}: {reason}")


class EmptyRoster(PayrollError):
    """No eligible employee for a payroll run."""


class InvalidPeriod(PayrollError):
    """Pay period outside the calendar."""


class InvalidTaxConfiguration(PayrollError):
    """Tax table that cannot be applied."""


class InvalidDisbursementTransition(PayrollError):
    """Disbursement status change that is not allowed."""


class UnknownDisbursementEntry(PayrollError):
    """Disbursement update for an employee not in the report."""

    def __init__(self, batch_id, employee_id):
        self.batch_id = batch_id
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} is not part of disbursement batch {batch_id}")


class WorkflowError(PayrollError, ValueError):
    """Approval action attempted in the wrong batch state."""
