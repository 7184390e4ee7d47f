from decimal import Decimal
from django.test import TestCase
from payroll.services.exceptions import InvalidTaxConfiguration
from payroll.services.tax_config import DEFAULT_CONFIG, build_config


class BuildConfigTests(TestCase):

    def test_defaults(self):
        config = build_config()
        self.assertEqual(config['version'], DEFAULT_CONFIG['version'])
        self.assertEqual(config['bands'][0], (Decimal('24000'), Decimal('0.10')))
        self.assertIsNone(config['bands'][-1][0])
        self.assertEqual(config['nssf_upper_limit'], Decimal('36000'))

    def test_overrides_are_converted_to_decimal(self):
        config = build_config({'version': 2025, 'personal_relief': '3000', 'sha_rate': 0.03})
        self.assertEqual(config['version'], '2025')
        self.assertEqual(config['personal_relief'], Decimal('3000'))
        self.assertEqual(config['sha_rate'], Decimal('0.03'))
        # untouched keys keep their defaults
        self.assertEqual(config['housing_levy_rate'], Decimal('0.015'))

    def test_defaults_are_not_mutated(self):
        build_config({'bands': [(1000, '0.5'), (None, '0.6')]})
        self.assertEqual(len(DEFAULT_CONFIG['bands']), 5)

    def test_band_limits_must_increase(self):
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'bands': [(30000, '0.1'), (24000, '0.25'), (None, '0.3')]})

    def test_repeated_limit_rejected(self):
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'bands': [(24000, '0.1'), (24000, '0.25'), (None, '0.3')]})

    def test_top_band_must_be_open(self):
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'bands': [(24000, '0.1'), (32333, '0.25')]})

    def test_only_top_band_open(self):
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'bands': [(None, '0.1'), (None, '0.25')]})

    def test_empty_bands_rejected(self):
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'bands': []})

    def test_rates_between_zero_and_one(self):
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'bands': [(24000, '1.5'), (None, '0.3')]})
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'nssf_rate': '-0.01'})

    def test_negative_amount_rejected(self):
        with self.assertRaises(InvalidTaxConfiguration):
            build_config({'personal_relief': -1})
