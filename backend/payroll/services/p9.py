"""
P9 Tax Deduction Card Service
Annual KRA P9A figures for an employee, month by month.
"""
from datetime import date
from typing import Callable, Optional
import logging

from .calculator import ReliefCalculator, TaxBandCalculator, round_currency
from .structures import (
    ZERO,
    CompensationStructure,
    Employer,
    EmployeeRecord,
    MonthlyTaxRow,
    P9Record,
    PayPeriod,
)
from .tax_config import build_config

logger = logging.getLogger('payroll')


def split_name(full_name: str):
    """Main name is the first word; everything after it is other names."""
    parts = (full_name or '').split()
    if not parts:
        return '', ''
    return parts[0], ' '.join(parts[1:])


class AnnualTaxCertificateComputer:
    """
    Computes the P9 card for one employee and tax year.

    The compensation structure is taken as constant for all twelve months.
    Unlike routine payroll, chargeable pay here is gross pay less AHL, SHIF
    and the capped PRMF, pension and mortgage interest deductions.
    """

    def __init__(self, config: Optional[dict] = None,
                 config_resolver: Optional[Callable[[date], dict]] = None):
        """
        Args:
            config: Tax configuration used for every month
            config_resolver: Returns the config effective on a date; when
                given it is consulted for the first day of each month and
                takes precedence over config
        """
        self.config = build_config(config)
        self.config_resolver = config_resolver

    def config_for(self, year: int, month: int) -> dict:
        if self.config_resolver is None:
            return self.config
        return build_config(self.config_resolver(date(year, month, 1)))

    def compute_month(self, structure: CompensationStructure, period: PayPeriod,
                      config: Optional[dict] = None) -> MonthlyTaxRow:
        """
        Calculate one row of the card.

        Every column is rounded to a whole unit before it takes part in a
        sum, so the row adds up exactly as printed.
        """
        config = config or self.config
        tax_bands = TaxBandCalculator(config)
        reliefs = ReliefCalculator(config)

        basic_salary = round_currency(structure.basic_salary)
        benefits = round_currency(structure.total_allowances)
        value_of_quarters = round_currency(
            min(structure.housing_allowance, structure.basic_salary * config['value_of_quarters_rate'])
        )
        total_gross_pay = basic_salary + benefits

        housing_levy = round_currency(total_gross_pay * config['housing_levy_rate'])
        shif = round_currency(total_gross_pay * config['sha_rate'])

        # Optional contributions are clamped to their statutory limits
        prmf = round_currency(min(structure.prmf_contribution, config['prmf_max_deduction']))
        pension = round_currency(min(structure.pension_contribution, config['pension_max_deduction']))
        mortgage_interest = round_currency(min(structure.mortgage_interest, config['mortgage_interest_max']))

        total_deductions = housing_levy + shif + prmf + pension + mortgage_interest
        chargeable_pay = total_gross_pay - total_deductions

        # Negative chargeable pay is printed as is and taxed as zero
        tax_charged = tax_bands.calculate(chargeable_pay)
        tax_reliefs = reliefs.calculate(structure.insurance_premium)
        paye_tax = reliefs.apply(tax_charged, tax_reliefs)

        logger.debug(
            f"P9 {period}: gross={total_gross_pay}, deductions={total_deductions}, "
            f"chargeable={chargeable_pay}, tax={tax_charged}, paye={paye_tax}"
        )

        return MonthlyTaxRow(
            month=period.month_name,
            basic_salary=basic_salary,
            benefits_non_cash=benefits,
            value_of_quarters=value_of_quarters,
            total_gross_pay=total_gross_pay,
            affordable_housing_levy=housing_levy,
            social_health_insurance_fund=shif,
            post_retirement_medical_fund=prmf,
            defined_contribution_retirement_scheme=pension,
            owner_occupied_interest=mortgage_interest,
            total_deductions=total_deductions,
            chargeable_pay=chargeable_pay,
            tax_charged=tax_charged,
            personal_relief=tax_reliefs.personal_relief,
            insurance_relief=tax_reliefs.insurance_relief,
            paye_tax=paye_tax,
        )

    def compute(self, employee: EmployeeRecord, year: int, employer: Employer) -> P9Record:
        """
        Calculate the full P9 record.

        Args:
            employee: Employee with compensation structure and KRA PIN
            year: Tax year
            employer: Employer name and KRA PIN

        Returns:
            P9Record with twelve monthly rows and annual totals

        Raises:
            InvalidPeriod: if year is not a valid calendar year
            InvalidCompensation: if the compensation structure is unusable
        """
        PayPeriod(year, 1)
        structure = employee.compensation
        structure.validate(employee.id)

        monthly_data = []
        for month in range(1, 13):
            period = PayPeriod(year, month)
            monthly_data.append(self.compute_month(structure, period, self.config_for(year, month)))

        total_chargeable_pay = sum((row.chargeable_pay for row in monthly_data), ZERO)
        total_tax = sum((row.paye_tax for row in monthly_data), ZERO)
        main_name, other_names = split_name(employee.name)

        logger.info(
            f"P9 {year} for {employee.id}: Chargeable Pay {total_chargeable_pay}, Tax {total_tax}"
        )

        return P9Record(
            year=year,
            employer_tax_id=employer.tax_id,
            employer_name=employer.name,
            employee_tax_id=employee.tax_id,
            employee_main_name=main_name,
            employee_other_names=other_names,
            monthly_data=monthly_data,
            total_chargeable_pay=total_chargeable_pay,
            total_tax=total_tax,
        )
