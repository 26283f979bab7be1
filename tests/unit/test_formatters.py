"""
Unit tests for rupee and date formatting helpers.
"""

from datetime import date, datetime
from decimal import Decimal

from storefront.utils.formatters import format_inr, format_inr_compact, format_date_in


class TestFormatInr:

    def test_two_decimals(self):
        """Test rupee formatting with two decimals."""
        assert format_inr(1500) == '₹1500.00'
        assert format_inr('99.5') == '₹99.50'
        assert format_inr(Decimal('10.005')) == '₹10.01'

    def test_without_decimals(self):
        """Test rupee formatting without decimals."""
        assert format_inr(1499.6, show_decimals=False) == '₹1500'

    def test_invalid_values(self):
        """Test formatting of empty and invalid amounts."""
        assert format_inr(None) == '₹0'
        assert format_inr('abc') == '₹0'


class TestFormatInrCompact:

    def test_units(self):
        """Test crore, lakh and thousand abbreviations."""
        assert format_inr_compact(25000000) == '₹2.5Cr'
        assert format_inr_compact(150000) == '₹1.5L'
        assert format_inr_compact(1200) == '₹1.2K'
        assert format_inr_compact(999) == '₹999'


class TestFormatDate:

    def test_date(self):
        """Test formatting a date."""
        assert format_date_in(date(2026, 1, 12)) == '12/01/2026'

    def test_datetime(self):
        """Test formatting a datetime."""
        moment = datetime(2026, 1, 12, 15, 30)
        assert format_date_in(moment) == '12/01/2026'
        assert format_date_in(moment, with_time=True) == '12/01/2026 15:30'

    def test_empty(self):
        """Test formatting a missing date."""
        assert format_date_in(None) == '-'
        assert format_date_in('2026-01-12') == '-'
