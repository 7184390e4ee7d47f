"""
Payroll Calculator Service
Implements Kenyan statutory deductions: PAYE, NSSF, SHIF, Housing Levy
Based on Kenya Revenue Authority tax rates (2024/2025)
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import logging

from .structures import (
    ZERO,
    EmployeeRecord,
    PayPeriod,
    PayrollLineItem,
    StatutoryDeductions,
    TaxReliefs,
)
from .tax_config import build_config

logger = logging.getLogger('payroll')


def round_currency(value: Decimal) -> Decimal:
    """Round to a whole currency unit, halves away from zero."""
    return value.quantize(Decimal('1'), rounding=ROUND_HALF_UP)


class TaxBandCalculator:
    """
    Progressive PAYE on monthly chargeable pay.

    Monthly Tax Bands (2024/2025):
    - 0 - 24,000: 10%
    - 24,001 - 32,333: 25%
    - 32,334 - 500,000: 30%
    - 500,001 - 800,000: 32.5%
    - Above 800,000: 35%
    """

    def __init__(self, config: Optional[dict] = None):
        """
        Args:
            config: Tax configuration overrides. Uses DEFAULT_CONFIG if not provided.
        """
        self.config = build_config(config)

    @property
    def bands(self):
        return self.config['bands']

    def calculate(self, chargeable_pay: Decimal) -> Decimal:
        """
        Calculate tax charged before reliefs.

        Each band taxes the slice of income between the previous limit and
        its own limit (inclusive); the sum is rounded once.

        Args:
            chargeable_pay: Monthly chargeable pay

        Returns:
            Tax charged, in whole currency units
        """
        if chargeable_pay <= 0:
            return ZERO

        tax = ZERO
        remaining = chargeable_pay
        previous_limit = ZERO

        for limit, rate in self.bands:
            if remaining <= 0:
                break

            if limit is None:
                band_income = remaining
            else:
                band_income = min(remaining, limit - previous_limit)

            tax += band_income * rate
            remaining -= band_income

            logger.debug(f"Tax Band: income={band_income}, rate={rate}, tax={band_income * rate}")

            if limit is not None:
                previous_limit = limit

        tax = round_currency(tax)
        logger.debug(f"Total Tax Charged: {tax}")
        return tax


class StatutoryDeductionCalculator:
    """NSSF, SHIF and Affordable Housing Levy on gross pay."""

    def __init__(self, config: Optional[dict] = None):
        self.config = build_config(config)

    def calculate_nssf(self, gross_pay: Decimal) -> Decimal:
        """
        Calculate NSSF contribution (employee portion).

        6% of pensionable pay up to the upper earnings limit of KES 36,000,
        so the contribution never exceeds KES 2,160.
        """
        pensionable = min(gross_pay, self.config['nssf_upper_limit'])
        nssf = round_currency(pensionable * self.config['nssf_rate'])
        logger.debug(f"NSSF: {nssf} (pensionable {pensionable})")
        return nssf

    def calculate_sha(self, gross_pay: Decimal) -> Decimal:
        """SHIF contribution: 2.75% of gross pay, uncapped."""
        sha = round_currency(gross_pay * self.config['sha_rate'])
        logger.debug(f"SHA: {sha} ({self.config['sha_rate']} of {gross_pay})")
        return sha

    def calculate_housing_levy(self, gross_pay: Decimal) -> Decimal:
        """Affordable Housing Levy: 1.5% of gross pay, uncapped."""
        levy = round_currency(gross_pay * self.config['housing_levy_rate'])
        logger.debug(f"Housing Levy: {levy} ({self.config['housing_levy_rate']} of {gross_pay})")
        return levy

    def calculate(self, gross_pay: Decimal) -> StatutoryDeductions:
        return StatutoryDeductions(
            nssf=self.calculate_nssf(gross_pay),
            sha=self.calculate_sha(gross_pay),
            housing_levy=self.calculate_housing_levy(gross_pay),
        )


class ReliefCalculator:
    """Personal and insurance relief, subtracted from tax charged."""

    def __init__(self, config: Optional[dict] = None):
        self.config = build_config(config)

    @property
    def personal_relief(self) -> Decimal:
        return self.config['personal_relief']

    def calculate_insurance_relief(self, insurance_premium: Decimal) -> Decimal:
        """
        Calculate insurance relief.

        Relief: 15% of insurance premium, max KES 5,000/month

        Args:
            insurance_premium: Monthly insurance premium paid

        Returns:
            Insurance relief amount
        """
        relief = insurance_premium * self.config['insurance_relief_rate']
        return round_currency(min(relief, self.config['insurance_relief_max']))

    def calculate(self, insurance_premium: Decimal = ZERO) -> TaxReliefs:
        return TaxReliefs(
            personal_relief=self.personal_relief,
            insurance_relief=self.calculate_insurance_relief(insurance_premium or ZERO),
        )

    def apply(self, tax_charged: Decimal, reliefs: TaxReliefs) -> Decimal:
        """PAYE after reliefs; never below zero."""
        return max(tax_charged - reliefs.total, ZERO)


class PayslipComputer:
    """
    Calculator for a single employee's monthly payslip.

    Calculation Steps:
    1. Gross Pay = Basic + Allowances
    2. NSSF, SHIF and Housing Levy on gross pay
    3. Tax charged on gross pay (routine payroll has no pre-tax deductions)
    4. PAYE = Tax Charged - Personal Relief - Insurance Relief, floored at zero
    5. Net Pay = Gross - PAYE - NSSF - SHIF - Housing Levy
    """

    def __init__(self, config: Optional[dict] = None):
        self.config = build_config(config)
        self.tax_bands = TaxBandCalculator(self.config)
        self.statutory = StatutoryDeductionCalculator(self.config)
        self.reliefs = ReliefCalculator(self.config)

    def compute(self, employee: EmployeeRecord, period) -> PayrollLineItem:
        """
        Calculate the payslip line for an employee.

        Args:
            employee: Employee with compensation structure
            period: PayPeriod or 'YYYY-MM'

        Returns:
            PayrollLineItem with whole-unit amounts

        Raises:
            InvalidCompensation: if basic salary is missing or an amount is negative
        """
        period = PayPeriod.parse(period)
        structure = employee.compensation
        structure.validate(employee.id)

        gross_pay = round_currency(structure.gross_salary)
        logger.info(
            f"Gross Pay for {employee.id}: {gross_pay} "
            f"(Basic: {structure.basic_salary}, Allowances: {structure.total_allowances})"
        )

        deductions = self.statutory.calculate(gross_pay)
        tax_charged = self.tax_bands.calculate(gross_pay)
        reliefs = self.reliefs.calculate(structure.insurance_premium)
        paye = self.reliefs.apply(tax_charged, reliefs)
        logger.info(f"PAYE for {employee.id}: {paye} (Tax: {tax_charged}, Relief: {reliefs.total})")

        total_deductions = paye + deductions.total
        net_pay = gross_pay - total_deductions
        logger.info(f"Net Pay for {employee.id}: {net_pay} (Gross: {gross_pay}, Deductions: {total_deductions})")

        return PayrollLineItem(
            employee_id=employee.id,
            employee_name=employee.name,
            account_number=employee.account_number,
            period=period,
            gross_salary=gross_pay,
            paye=paye,
            nssf=deductions.nssf,
            sha=deductions.sha,
            housing_levy=deductions.housing_levy,
            total_deductions=total_deductions,
            net_salary=net_pay,
        )
