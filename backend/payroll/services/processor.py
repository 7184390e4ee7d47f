"""
Payroll Processor Service
Builds the payroll run for all active employees in a period.
"""
import uuid
from typing import Iterable, Optional
import logging

from .calculator import PayslipComputer
from .exceptions import EmptyRoster, InvalidCompensation
from .structures import EmployeeRecord, EmploymentStatus, PayPeriod, PayrollRun, RunTotals, SkippedEmployee

logger = logging.getLogger('payroll')


def generate_batch_id(period: PayPeriod) -> str:
    return f"PAY-{period}-{uuid.uuid4().hex[:8].upper()}"


class PayrollRunProcessor:
    """
    Processes payroll for all active employees in a given period.

    The processor holds no state between runs; every call to build_run
    returns a new PayrollRun.
    """

    def __init__(self, config: Optional[dict] = None):
        """
        Args:
            config: Tax configuration shared with the P9 path
        """
        self.computer = PayslipComputer(config)

    @property
    def config(self) -> dict:
        return self.computer.config

    def _as_record(self, employee) -> EmployeeRecord:
        if isinstance(employee, EmployeeRecord):
            return employee
        return EmployeeRecord.from_dict(employee)

    def _identify(self, employee):
        """
        Employee id and status, read before the rest of the entry is decoded.

        Raises:
            InvalidCompensation: if the employment status is not recognised
        """
        if isinstance(employee, EmployeeRecord):
            return employee.id, employee.employment_status
        employee_id = str(employee.get('id', ''))
        try:
            return employee_id, EmploymentStatus.parse(employee.get('employmentStatus'))
        except ValueError as e:
            raise InvalidCompensation(employee_id, str(e))

    def build_run(self, roster: Iterable, period, batch_id: Optional[str] = None) -> PayrollRun:
        """
        Compute one payslip per active employee, in roster order.

        An employee with an unusable compensation structure is skipped and
        recorded on the run; the rest of the batch carries on.

        Args:
            roster: EmployeeRecord objects or input-contract dicts
            period: PayPeriod or 'YYYY-MM'
            batch_id: Batch identifier; generated when not given

        Returns:
            Complete PayrollRun

        Raises:
            InvalidPeriod: if the period is not a calendar month
            EmptyRoster: if no active employee produced a payslip
        """
        period = PayPeriod.parse(period)
        batch_id = batch_id or generate_batch_id(period)

        items = []
        skipped = []
        eligible = 0

        for employee in roster:
            try:
                employee_id, status = self._identify(employee)
            except InvalidCompensation as e:
                logger.warning(f"Skipping roster entry {e.employee_id} for {period}: {e.reason}")
                skipped.append(SkippedEmployee(str(e.employee_id), e.reason))
                continue

            if status != EmploymentStatus.ACTIVE:
                logger.debug(f"Employee {employee_id} is {status.value}; not in run {batch_id}")
                continue

            eligible += 1
            try:
                items.append(self.computer.compute(self._as_record(employee), period))
            except InvalidCompensation as e:
                logger.warning(f"Skipping employee {employee_id} for {period}: {e.reason}")
                skipped.append(SkippedEmployee(employee_id, e.reason))

        if eligible == 0:
            logger.error(f"Payroll run for {period} rejected: no active employees")
            raise EmptyRoster(f"No active employees to process for {period}")
        if not items:
            logger.error(f"Payroll run for {period} rejected: all {eligible} active employees were skipped")
            raise EmptyRoster(f"No valid employee records to process for {period}")

        totals = RunTotals.from_items(items)
        logger.info(
            f"Payroll run {batch_id} built for {period}: "
            f"{totals.employees} processed, {len(skipped)} skipped, "
            f"Total Gross: {totals.gross_salary}, Total Net: {totals.net_salary}"
        )

        return PayrollRun(
            batch_id=batch_id,
            period=period,
            items=items,
            skipped=skipped,
            totals=totals,
            tax_config_version=self.config['version'],
        )
