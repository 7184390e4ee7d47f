"""
Disbursement Report Service
Projects an approved payroll run into the report handed to the finance
ledger, and applies per-employee disbursement outcomes.
"""
from dataclasses import replace
from typing import Optional
import logging

from .exceptions import InvalidDisbursementTransition, UnknownDisbursementEntry
from .structures import (
    DisbursementApproval,
    DisbursementEntry,
    DisbursementReport,
    EntryStatus,
    PayrollRun,
    ReportStatus,
)

logger = logging.getLogger('payroll')


def parse_entry_status(value) -> EntryStatus:
    if isinstance(value, EntryStatus):
        return value
    try:
        return EntryStatus(value)
    except ValueError:
        try:
            return EntryStatus[str(value).upper()]
        except KeyError:
            raise InvalidDisbursementTransition(f"Unknown disbursement status: {value!r}")


class DisbursementReportBuilder:
    """Builds the Approved disbursement report for a payroll run."""

    def build(self, run: PayrollRun, approval: DisbursementApproval,
              report_id: Optional[str] = None) -> DisbursementReport:
        """
        Project a run into a disbursement report.

        Totals and net salaries are copied from the run, never recomputed.

        Args:
            run: Approved payroll run
            approval: Approver, dates and method
            report_id: Report identifier; defaults to DISB-<batch id>

        Returns:
            DisbursementReport with status Approved and all entries Pending
        """
        entries = [
            DisbursementEntry(
                employee_id=item.employee_id,
                employee_name=item.employee_name,
                net_salary=item.net_salary,
                account_number=item.account_number,
            )
            for item in run.items
        ]

        report = DisbursementReport(
            report_id=report_id or f"DISB-{run.batch_id}",
            batch_id=run.batch_id,
            period=run.period,
            total_employees=run.totals.employees,
            total_gross_amount=run.totals.gross_salary,
            total_deductions=run.totals.total_deductions,
            total_net_amount=run.totals.net_salary,
            approved_by=approval.approved_by,
            approved_date=approval.approved_date,
            disbursement_date=approval.disbursement_date or approval.approved_date,
            disbursement_method=approval.disbursement_method,
            employees=entries,
            notes=approval.notes or f"Payroll disbursement approved for {run.totals.employees} employees",
        )
        logger.info(
            f"Disbursement report {report.report_id} approved by {approval.approved_by}: "
            f"{report.total_employees} employees, Total Net: {report.total_net_amount}"
        )
        return report


def _settle(entries) -> ReportStatus:
    statuses = {e.disbursement_status for e in entries}
    if EntryStatus.PENDING in statuses:
        return ReportStatus.APPROVED
    if statuses <= {EntryStatus.SUCCESS}:
        return ReportStatus.DISBURSED
    return ReportStatus.FAILED


def apply_disbursement_update(report: DisbursementReport, employee_id: str, status) -> DisbursementReport:
    """
    Record the outcome of one employee's payment.

    Re-applying an outcome already recorded returns the report unchanged.
    Once no entry is Pending the report settles to Disbursed (all paid) or
    Failed (at least one payment failed).

    Raises:
        UnknownDisbursementEntry: if the employee is not in the report
        InvalidDisbursementTransition: for a change away from a final status
    """
    status = parse_entry_status(status)
    if status == EntryStatus.PENDING:
        raise InvalidDisbursementTransition('Disbursement entries cannot return to Pending')

    entry = report.entry_for(employee_id)
    if entry is None:
        raise UnknownDisbursementEntry(report.batch_id, employee_id)

    if entry.disbursement_status == status:
        logger.debug(f"Disbursement {report.batch_id}/{employee_id} already {status.value}")
        return report
    if report.is_terminal:
        raise InvalidDisbursementTransition(
            f"Disbursement {report.batch_id} is {report.status.value}; no further updates"
        )
    if entry.disbursement_status != EntryStatus.PENDING:
        raise InvalidDisbursementTransition(
            f"Payment to {employee_id} is already {entry.disbursement_status.value}"
        )

    entries = tuple(
        replace(e, disbursement_status=status) if e.employee_id == employee_id else e
        for e in report.employees
    )
    updated = replace(report, employees=entries, status=_settle(entries))
    logger.info(f"Disbursement {report.batch_id}/{employee_id}: {status.value} (report {updated.status.value})")
    return updated


def fail_report(report: DisbursementReport, reason: str) -> DisbursementReport:
    """Fail every pending payment, e.g. when the bank rejects the batch."""
    if report.status == ReportStatus.FAILED:
        return report
    if report.status == ReportStatus.DISBURSED:
        raise InvalidDisbursementTransition(f"Disbursement {report.batch_id} is already Disbursed")

    entries = tuple(
        replace(e, disbursement_status=EntryStatus.FAILED)
        if e.disbursement_status == EntryStatus.PENDING else e
        for e in report.employees
    )
    notes = f"{report.notes}\n\nFailed: {reason}" if report.notes else f"Failed: {reason}"
    logger.warning(f"Disbursement {report.batch_id} failed: {reason}")
    return replace(report, employees=entries, status=ReportStatus.FAILED, notes=notes)
