"""
Payroll Workflow Service
Prepares payroll batches from the employee roster and moves them through
approval and disbursement. Calculations are delegated to the engine; this
module owns persistence and the audit trail.
"""
from datetime import date
from typing import Optional
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
import logging

from core.models import AuditLog
from payroll.models import PayrollBatch, Disbursement, TaxTable
from .disbursement import DisbursementReportBuilder, apply_disbursement_update, fail_report
from .exceptions import WorkflowError
from .p9 import AnnualTaxCertificateComputer
from .processor import PayrollRunProcessor
from .structures import DisbursementApproval, Employer, P9Record, PayPeriod, ReportStatus

logger = logging.getLogger('payroll')


def payroll_setting(key, default=None):
    return getattr(settings, 'PAYROLL', {}).get(key, default)


class PayrollWorkflow:
    """
    Approval workflow for a single payroll batch.
    """

    def __init__(self, batch: PayrollBatch):
        """
        Args:
            batch: The PayrollBatch to act on
        """
        self.batch = batch

    @classmethod
    @transaction.atomic
    def prepare(cls, year: int, month: int, prepared_by, batch_id: Optional[str] = None) -> 'PayrollWorkflow':
        """
        Build and persist the payroll batch for a period.

        Args:
            year: Payroll year
            month: Payroll month
            prepared_by: User who is preparing the payroll
            batch_id: Optional explicit batch identifier

        Returns:
            Workflow for the new batch, pending HR approval

        Raises:
            InvalidPeriod, EmptyRoster: the batch is not created
        """
        period = PayPeriod(year, month)
        User = get_user_model()

        employees = {}
        roster = []
        for employee in User.objects.payroll_roster().prefetch_related('allowances'):
            record = employee.to_employee_record(period.first_day)
            employees[record.id] = employee
            roster.append(record)

        processor = PayrollRunProcessor(TaxTable.config_for(period.first_day))
        logger.info(f"Processing payroll for {len(roster)} employees ({period})")
        run = processor.build_run(roster, period, batch_id=batch_id)

        batch = PayrollBatch.create_from_run(
            run,
            prepared_by=prepared_by,
            employees=employees,
            prepared_at=timezone.now(),
        )
        AuditLog.log(
            prepared_by,
            AuditLog.ActionType.CREATE,
            'PayrollBatch',
            object_id=batch.batch_id,
            object_repr=str(batch),
            changes={'totals': run.totals.to_dict(), 'skipped': batch.skipped},
        )

        logger.info(
            f"Payroll processing complete. "
            f"Total Gross: {batch.total_gross}, "
            f"Total Net: {batch.total_net}"
        )
        return cls(batch)

    def _lock(self) -> PayrollBatch:
        self.batch = PayrollBatch.objects.select_for_update().get(pk=self.batch.pk)
        return self.batch

    @transaction.atomic
    def approve_hr(self, approved_by, comments: str = '') -> PayrollBatch:
        """HR approval of payroll."""
        batch = self._lock()
        if not approved_by.is_hr:
            raise WorkflowError(f"{approved_by.get_full_name()} cannot give HR approval")
        if batch.status != PayrollBatch.Status.PENDING_HR:
            raise WorkflowError("Payroll is not pending HR approval")

        batch.hr_approved_by = approved_by
        batch.hr_approved_at = timezone.now()
        batch.hr_comments = comments
        batch.status = PayrollBatch.Status.PENDING_MANAGEMENT
        batch.updated_by = approved_by
        batch.save()

        AuditLog.log(approved_by, AuditLog.ActionType.APPROVE, 'PayrollBatch', batch.batch_id,
                     str(batch), {'stage': 'hr', 'comments': comments})
        logger.info(f"Payroll {batch.batch_id} HR approved by {approved_by.get_full_name()}")
        return batch

    @transaction.atomic
    def approve_management(self, approved_by, comments: str = '') -> PayrollBatch:
        """Management final approval of payroll."""
        batch = self._lock()
        if not approved_by.is_management:
            raise WorkflowError(f"{approved_by.get_full_name()} cannot give management approval")
        if batch.status != PayrollBatch.Status.PENDING_MANAGEMENT:
            raise WorkflowError("Payroll is not pending management approval")

        batch.mgmt_approved_by = approved_by
        batch.mgmt_approved_at = timezone.now()
        batch.mgmt_comments = comments
        batch.status = PayrollBatch.Status.APPROVED
        batch.updated_by = approved_by
        batch.save()

        AuditLog.log(approved_by, AuditLog.ActionType.APPROVE, 'PayrollBatch', batch.batch_id,
                     str(batch), {'stage': 'management', 'comments': comments})
        logger.info(f"Payroll {batch.batch_id} management approved by {approved_by.get_full_name()}")
        return batch

    @transaction.atomic
    def reject(self, rejected_by, comments: str) -> PayrollBatch:
        """
        Reject payroll.

        The batch keeps its figures; a corrected payroll is a new batch.
        """
        batch = self._lock()
        if batch.status not in (PayrollBatch.Status.PENDING_HR, PayrollBatch.Status.PENDING_MANAGEMENT):
            raise WorkflowError(f"Payroll in status '{batch.get_status_display()}' cannot be rejected")

        note = f"Rejected by {rejected_by.get_full_name()}: {comments}"
        if batch.status == PayrollBatch.Status.PENDING_HR:
            batch.hr_comments = f"{batch.hr_comments}\n\n{note}" if batch.hr_comments else note
        else:
            batch.mgmt_comments = f"{batch.mgmt_comments}\n\n{note}" if batch.mgmt_comments else note
        batch.status = PayrollBatch.Status.REJECTED
        batch.updated_by = rejected_by
        batch.save()

        AuditLog.log(rejected_by, AuditLog.ActionType.REJECT, 'PayrollBatch', batch.batch_id,
                     str(batch), {'comments': comments})
        logger.info(f"Payroll {batch.batch_id} rejected by {rejected_by.get_full_name()}: {comments}")
        return batch

    @transaction.atomic
    def create_disbursement(self, approved_by, method: Optional[str] = None,
                            disbursement_date: Optional[date] = None, notes: str = '') -> Disbursement:
        """
        Hand an approved batch to the finance ledger.

        Args:
            approved_by: Accounts user authorising payment
            method: Disbursement method; defaults to PAYROLL['DEFAULT_DISBURSEMENT_METHOD']
            disbursement_date: Payment date; defaults to today
            notes: Free-text notes for the ledger

        Returns:
            The persisted Disbursement, status Approved
        """
        batch = self._lock()
        if not approved_by.is_accounts:
            raise WorkflowError(f"{approved_by.get_full_name()} cannot authorise disbursement")
        if batch.status != PayrollBatch.Status.APPROVED:
            raise WorkflowError("Payroll is not approved for disbursement")

        today = timezone.localdate()
        approval = DisbursementApproval(
            approved_by=approved_by.get_full_name(),
            approved_date=today,
            disbursement_method=method or payroll_setting('DEFAULT_DISBURSEMENT_METHOD', 'Bank Transfer'),
            disbursement_date=disbursement_date or today,
            notes=notes,
        )
        report = DisbursementReportBuilder().build(batch.to_run(), approval)
        disbursement = Disbursement.create_from_report(batch, report, created_by=approved_by)

        batch.status = PayrollBatch.Status.DISBURSING
        batch.updated_by = approved_by
        batch.save()

        AuditLog.log(approved_by, AuditLog.ActionType.CREATE, 'Disbursement', report.report_id,
                     str(disbursement), {'totalNetAmount': int(report.total_net_amount)})
        return disbursement

    @transaction.atomic
    def record_disbursement(self, employee_id: str, status, updated_by=None) -> Disbursement:
        """
        Record a payment outcome reported by the ledger.

        Safe to repeat: an outcome already recorded changes nothing.
        """
        disbursement = self._disbursement()
        report = disbursement.to_report()
        updated = apply_disbursement_update(report, employee_id, status)
        if updated is report:
            return disbursement

        disbursement.sync_from_report(updated, updated_by=updated_by)
        self._settle_batch(updated.status, updated_by)
        entry = updated.entry_for(employee_id)
        AuditLog.log(updated_by, AuditLog.ActionType.UPDATE, 'Disbursement', updated.report_id,
                     str(disbursement), {'employeeId': employee_id, 'status': entry.disbursement_status.value})
        return disbursement

    @transaction.atomic
    def fail_disbursement(self, reason: str, updated_by=None) -> Disbursement:
        """Fail every pending payment of the batch."""
        disbursement = self._disbursement()
        report = disbursement.to_report()
        updated = fail_report(report, reason)
        if updated is report:
            return disbursement

        disbursement.sync_from_report(updated, updated_by=updated_by)
        self._settle_batch(updated.status, updated_by)
        AuditLog.log(updated_by, AuditLog.ActionType.UPDATE, 'Disbursement', updated.report_id,
                     str(disbursement), {'failed': reason})
        return disbursement

    def _disbursement(self) -> Disbursement:
        batch = self._lock()
        try:
            return batch.disbursement
        except Disbursement.DoesNotExist:
            raise WorkflowError(f"Payroll {batch.batch_id} has no disbursement")

    def _settle_batch(self, report_status: ReportStatus, updated_by):
        if report_status == ReportStatus.DISBURSED:
            self.batch.status = PayrollBatch.Status.PAID
        elif report_status == ReportStatus.FAILED:
            self.batch.status = PayrollBatch.Status.FAILED
        else:
            return
        self.batch.updated_by = updated_by
        self.batch.save()
        logger.info(f"Payroll {self.batch.batch_id} {self.batch.get_status_display().lower()}")


def issue_p9(employee, year: int, issued_by=None) -> P9Record:
    """
    Generate the P9 card for an employee and year.

    Employer identity comes from settings; the tax table is resolved for
    each month so mid-year rate changes are honoured.
    """
    employer = Employer(
        name=payroll_setting('EMPLOYER_NAME', ''),
        tax_id=payroll_setting('EMPLOYER_TAX_ID', ''),
    )
    computer = AnnualTaxCertificateComputer(config_resolver=TaxTable.config_for)
    record = computer.compute(employee.to_employee_record(date(year, 12, 31)), year, employer)

    AuditLog.log(issued_by, AuditLog.ActionType.GENERATE, 'P9Record', employee.payroll_id,
                 f"P9 {year} - {employee.get_full_name()}", {'totalTax': int(record.total_tax)})
    return record
