from rest_framework import serializers
from .models import CategoryType, CategoryItem


class CategoryTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = CategoryType
        fields = ['id', 'key', 'label', 'description', 'sort_order']


class CategoryItemSerializer(serializers.ModelSerializer):
    category_type_key = serializers.CharField(source='category_type.key', read_only=True)

    class Meta:
        model = CategoryItem
        fields = ['id', 'category_type', 'category_type_key', 'name', 'is_active', 'is_editable',
                  'sort_order', 'created_at', 'updated_at']
        read_only_fields = ['category_type', 'is_editable', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name cannot be blank.")
        return value

    def validate(self, attrs):
        organization = self.context['organization']
        category_type = self.context.get('category_type') or getattr(self.instance, 'category_type', None)
        name = attrs.get('name')
        if self.instance is not None and not self.instance.is_editable and name and name != self.instance.name:
            raise serializers.ValidationError({"name": "Default categories cannot be renamed."})
        if name:
            duplicates = CategoryItem.objects.filter(
                organization=organization, category_type=category_type, name__iexact=name
            )
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError({"name": f"'{name}' already exists in this category."})
        return attrs
