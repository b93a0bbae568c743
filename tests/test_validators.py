"""
Tests for input validation utilities
"""
import pytest
from datetime import date
from decimal import Decimal
from errors import ValidationError
from validators import (
    validate_required_fields,
    validate_string_length,
    validate_number_range,
    sanitize_string,
    parse_date,
    validate_fee_schedule_request,
    validate_calculate_request,
    validate_fee_history_request,
)


@pytest.mark.unit
class TestRequiredFields:
    """Tests for required fields validation"""

    def test_validate_all_fields_present(self):
        """Test validation passes when all fields present"""
        data = {'entity_id': 'hh-1', 'fee_type': 'aum'}
        is_valid, error = validate_required_fields(data, ['entity_id', 'fee_type'])
        assert is_valid is True
        assert error is None

    def test_validate_missing_field(self):
        """Test validation fails when field missing"""
        is_valid, error = validate_required_fields({'entity_id': 'hh-1'}, ['entity_id', 'fee_type'])
        assert is_valid is False
        assert 'fee_type' in error

    def test_validate_empty_field(self):
        """Test validation fails when field is empty string"""
        is_valid, error = validate_required_fields({'entity_id': ''}, ['entity_id'])
        assert is_valid is False


@pytest.mark.unit
class TestSimpleValidators:
    """Tests for string and number validators"""

    def test_string_too_long(self):
        """Test strings over the limit are rejected"""
        is_valid, error = validate_string_length('x' * 11, max_length=10)
        assert is_valid is False
        assert 'too long' in error

    def test_number_range(self):
        """Test numbers outside the range are rejected"""
        assert validate_number_range(5, 0, 10) == (True, None)
        assert validate_number_range(-1, 0, 10)[0] is False
        assert validate_number_range(True, 0, 10)[0] is False

    def test_sanitize_string(self):
        """Test null bytes and surrounding whitespace are removed"""
        assert sanitize_string('  Smith\x00 Family  ') == 'Smith Family'

    def test_parse_date(self):
        """Test ISO dates and datetimes parse to dates"""
        assert parse_date('2026-03-31', 'd') == date(2026, 3, 31)
        assert parse_date('2026-03-31T10:00:00Z', 'd') == date(2026, 3, 31)
        assert parse_date('', 'd') is None

    def test_parse_date_invalid(self):
        """Test malformed dates name the field"""
        with pytest.raises(ValidationError) as exc_info:
            parse_date('March 31', 'end_date')
        assert exc_info.value.field == 'end_date'


@pytest.mark.unit
class TestFeeScheduleRequest:
    """Tests for fee schedule payload validation"""

    def test_valid_request(self, sample_aum_schedule):
        """Test a valid payload is cleaned"""
        sample_aum_schedule.update({'fee_type': 'AUM', 'minimum_fee': '2000', 'effective_date': '2026-01-01'})
        cleaned = validate_fee_schedule_request(sample_aum_schedule)
        assert cleaned['fee_type'] == 'aum'
        assert cleaned['minimum_fee'] == Decimal('2000')
        assert cleaned['effective_date'] == date(2026, 1, 1)
        assert len(cleaned['tiers']) == 2

    def test_requires_tiers(self, sample_aum_schedule):
        """Test tiers are required on create"""
        del sample_aum_schedule['tiers']
        with pytest.raises(ValidationError) as exc_info:
            validate_fee_schedule_request(sample_aum_schedule)
        assert exc_info.value.field == 'tiers'

    def test_invalid_frequency(self, sample_aum_schedule):
        """Test unknown frequencies are rejected"""
        sample_aum_schedule['frequency'] = 'weekly'
        with pytest.raises(ValidationError) as exc_info:
            validate_fee_schedule_request(sample_aum_schedule)
        assert exc_info.value.field == 'frequency'

    def test_negative_minimum_fee(self, sample_aum_schedule):
        """Test negative fee bounds are rejected"""
        sample_aum_schedule['minimum_fee'] = -1
        with pytest.raises(ValidationError):
            validate_fee_schedule_request(sample_aum_schedule)

    def test_maximum_fee_beyond_cents(self, sample_aum_schedule):
        """Test fee bounds finer than cents are rejected"""
        sample_aum_schedule['maximum_fee'] = 50000.125
        with pytest.raises(ValidationError) as exc_info:
            validate_fee_schedule_request(sample_aum_schedule)
        assert exc_info.value.field == 'maximum_fee'

    def test_end_date_before_effective_date(self, sample_aum_schedule):
        """Test the end date may not precede the effective date"""
        sample_aum_schedule.update({'effective_date': '2026-06-01', 'end_date': '2026-01-01'})
        with pytest.raises(ValidationError) as exc_info:
            validate_fee_schedule_request(sample_aum_schedule)
        assert exc_info.value.field == 'end_date'

    def test_partial_only_checks_present_fields(self):
        """Test partial validation accepts a subset of fields"""
        assert validate_fee_schedule_request({'name': 'Renamed'}, partial=True) == {'name': 'Renamed'}

    def test_non_object_body(self):
        """Test a non-object body is rejected"""
        with pytest.raises(ValidationError):
            validate_fee_schedule_request(['not', 'an', 'object'])


@pytest.mark.unit
class TestCalculateRequest:
    """Tests for fee calculation payload validation"""

    def test_valid_request(self):
        """Test a valid payload returns the id and amount"""
        assert validate_calculate_request({'fee_schedule_id': 'fs-1', 'billable_amount': '1500000'}) == \
            ('fs-1', Decimal('1500000'))

    def test_zero_amount_allowed(self):
        """Test a zero amount is accepted"""
        assert validate_calculate_request({'fee_schedule_id': 'fs-1', 'billable_amount': 0})[1] == Decimal('0')

    def test_negative_amount(self):
        """Test a negative amount is rejected"""
        with pytest.raises(ValidationError) as exc_info:
            validate_calculate_request({'fee_schedule_id': 'fs-1', 'billable_amount': -100})
        assert exc_info.value.field == 'billable_amount'


@pytest.mark.unit
class TestFeeHistoryRequest:
    """Tests for fee history payload validation"""

    def test_valid_request(self, sample_fee_history):
        """Test a valid payload is cleaned"""
        cleaned = validate_fee_history_request(sample_fee_history)
        assert cleaned['billing_period_end'] == date(2026, 3, 31)
        assert cleaned['fee_amount'] == Decimal('3125')
        assert cleaned['fee_schedule_id'] is None
        assert cleaned['effective_rate'] is None

    def test_missing_fee_amount(self, sample_fee_history):
        """Test fee_amount is required"""
        del sample_fee_history['fee_amount']
        with pytest.raises(ValidationError) as exc_info:
            validate_fee_history_request(sample_fee_history)
        assert exc_info.value.field == 'fee_amount'

    def test_fee_amount_beyond_cents(self, sample_fee_history):
        """Test amounts finer than cents are rejected"""
        sample_fee_history['fee_amount'] = '3125.005'
        with pytest.raises(ValidationError) as exc_info:
            validate_fee_history_request(sample_fee_history)
        assert exc_info.value.field == 'fee_amount'

    def test_fee_amount_too_large(self, sample_fee_history):
        """Test fee amounts beyond ten whole digits are rejected"""
        sample_fee_history['fee_amount'] = 10000000000
        with pytest.raises(ValidationError) as exc_info:
            validate_fee_history_request(sample_fee_history)
        assert exc_info.value.field == 'fee_amount'

    def test_trailing_zeros_allowed(self, sample_fee_history):
        """Test trailing zeros do not count as extra decimal places"""
        sample_fee_history['fee_amount'] = '3125.0000'
        assert validate_fee_history_request(sample_fee_history)['fee_amount'] == Decimal('3125')
