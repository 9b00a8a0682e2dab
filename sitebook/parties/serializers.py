from rest_framework import serializers
from sitebook.core.validators import validate_phone
from .models import Party


class PartySerializer(serializers.ModelSerializer):
    class Meta:
        model = Party
        fields = ['id', 'name', 'phone', 'location', 'type', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name cannot be blank.")
        return value

    def validate_phone(self, value):
        if value in (None, ''):
            return None
        return validate_phone(value)

    def validate_location(self, value):
        if value is None:
            return None
        return value.strip() or None

    def validate(self, attrs):
        party_type = attrs.get('type', getattr(self.instance, 'type', None))
        phone = attrs['phone'] if 'phone' in attrs else getattr(self.instance, 'phone', None)
        if party_type in Party.PAYABLE_TYPES and not phone:
            raise serializers.ValidationError({"phone": f"Phone is required for {party_type.lower()} parties."})
        return attrs


class PartyListSerializer(serializers.ModelSerializer):
    """Lightweight row for pickers"""
    class Meta:
        model = Party
        fields = ['id', 'name', 'phone', 'type']
