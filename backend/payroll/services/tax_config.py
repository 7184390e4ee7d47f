"""
Shared tax configuration for the payroll and P9 paths.

Both paths read the same merged config dict, so the PAYE band table exists
in exactly one place per version.
"""
from decimal import Decimal
from typing import Optional

from .exceptions import InvalidTaxConfiguration

# Kenya statutory rates (monthly), Finance Act 2023 bands with SHIF and
# Affordable Housing Levy effective December 2024.
DEFAULT_CONFIG = {
    'version': 'KE-2024-12',

    # PAYE tax bands: (upper limit, rate); None marks the open top band
    'bands': [
        (Decimal('24000'), Decimal('0.10')),
        (Decimal('32333'), Decimal('0.25')),
        (Decimal('500000'), Decimal('0.30')),
        (Decimal('800000'), Decimal('0.325')),
        (None, Decimal('0.35')),
    ],

    # Reliefs
    'personal_relief': Decimal('2400'),
    'insurance_relief_rate': Decimal('0.15'),
    'insurance_relief_max': Decimal('5000'),

    # NSSF: 6% of pensionable pay up to the upper earnings limit
    'nssf_rate': Decimal('0.06'),
    'nssf_upper_limit': Decimal('36000'),

    # SHIF (Social Health Insurance Fund)
    'sha_rate': Decimal('0.0275'),

    # Affordable Housing Levy
    'housing_levy_rate': Decimal('0.015'),

    # P9 allowable deduction limits (monthly)
    'pension_max_deduction': Decimal('30000'),
    'prmf_max_deduction': Decimal('15000'),
    'mortgage_interest_max': Decimal('30000'),
    'value_of_quarters_rate': Decimal('0.30'),
}

RATE_KEYS = (
    'insurance_relief_rate', 'nssf_rate', 'sha_rate', 'housing_levy_rate', 'value_of_quarters_rate',
)

AMOUNT_KEYS = (
    'personal_relief', 'insurance_relief_max', 'nssf_upper_limit',
    'pension_max_deduction', 'prmf_max_deduction', 'mortgage_interest_max',
)


def _decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def normalize_bands(bands) -> list:
    """Return bands as (Decimal limit | None, Decimal rate) tuples."""
    normalized = []
    for limit, rate in bands:
        normalized.append((None if limit is None else _decimal(limit), _decimal(rate)))
    return normalized


def validate_config(config: dict) -> dict:
    """
    Check a merged configuration.

    Raises:
        InvalidTaxConfiguration: if band limits are not strictly increasing,
            the top band is not open-ended, or a rate falls outside 0..1.
    """
    bands = config['bands']
    if not bands:
        raise InvalidTaxConfiguration('At least one tax band is required')

    previous = Decimal('0')
    for index, (limit, rate) in enumerate(bands):
        is_last = index == len(bands) - 1
        if (limit is None) != is_last:
            raise InvalidTaxConfiguration('The top tax band, and only the top band, must be open-ended')
        if limit is not None and limit <= previous:
            raise InvalidTaxConfiguration(f"Band limit {limit} is not above {previous}")
        if not Decimal('0') <= rate <= Decimal('1'):
            raise InvalidTaxConfiguration(f"Band rate {rate} is outside 0..1")
        if limit is not None:
            previous = limit

    for key in RATE_KEYS:
        if not Decimal('0') <= config[key] <= Decimal('1'):
            raise InvalidTaxConfiguration(f"{key} {config[key]} is outside 0..1")
    for key in AMOUNT_KEYS:
        if config[key] < 0:
            raise InvalidTaxConfiguration(f"{key} must not be negative")

    return config


def build_config(overrides: Optional[dict] = None) -> dict:
    """
    Merge overrides onto DEFAULT_CONFIG and validate the result.

    Args:
        overrides: Partial config, e.g. from a TaxTable row or settings.

    Returns:
        New config dict with Decimal values
    """
    config = {**DEFAULT_CONFIG, **(overrides or {})}
    config['bands'] = normalize_bands(config['bands'])
    for key in RATE_KEYS + AMOUNT_KEYS:
        config[key] = _decimal(config[key])
    config['version'] = str(config['version'])
    return validate_config(config)
