from rest_framework import serializers

MIN_PHONE_DIGITS = 10


def count_digits(value):
    return sum(1 for ch in value or '' if ch.isdigit())


def validate_phone(value):
    """Phone numbers may carry spaces, dashes or a + prefix but need 10+ digits"""
    if value is None:
        return value
    value = value.strip()
    if count_digits(value) < MIN_PHONE_DIGITS:
        raise serializers.ValidationError(f"Phone number must have at least {MIN_PHONE_DIGITS} digits.")
    return value


def validate_date_range(start, end, start_field='start_date', end_field='end_date'):
    if start and end and end < start:
        raise serializers.ValidationError({end_field: f"Must not be earlier than {start_field}."})
