from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from sitebook.core.exceptions import InvalidInput
from sitebook.core.permissions import require_permission
from sitebook.core.responses import success_response, created_response, validation_error_response
from sitebook.core.tenancy import get_organization
from sitebook.core.utils import parse_bool
from .models import CategoryType, CategoryItem
from .serializers import CategoryTypeSerializer, CategoryItemSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('categories')])
def category_type_list(request):
    """List global category types"""
    serializer = CategoryTypeSerializer(CategoryType.objects.all(), many=True)
    return success_response(serializer.data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('categories')])
def category_item_list_create(request, type_key):
    """List or create an organization's items for one category type"""
    organization = get_organization(request)
    category_type = get_object_or_404(CategoryType, key=type_key)

    if request.method == 'GET':
        items = CategoryItem.objects.filter(organization=organization, category_type=category_type)
        include_inactive = parse_bool(request.query_params.get('include_inactive'))
        if not include_inactive:
            items = items.filter(is_active=True)
        serializer = CategoryItemSerializer(items, many=True)
        return success_response(serializer.data)
    else:
        serializer = CategoryItemSerializer(
            data=request.data,
            context={'organization': organization, 'category_type': category_type},
        )
        if serializer.is_valid():
            item = serializer.save(organization=organization, category_type=category_type)
            return created_response(CategoryItemSerializer(item).data)
        return validation_error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('categories')])
def category_item_detail(request, pk):
    """Retrieve, update or delete a category item"""
    organization = get_organization(request)
    item = get_object_or_404(CategoryItem.objects.select_related('category_type'), pk=pk, organization=organization)

    if request.method == 'GET':
        return success_response(CategoryItemSerializer(item).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategoryItemSerializer(
            item,
            data=request.data,
            partial=request.method == 'PATCH',
            context={'organization': organization},
        )
        if serializer.is_valid():
            serializer.save()
            return success_response(serializer.data)
        return validation_error_response(serializer.errors)
    else:  # DELETE
        if not item.is_editable:
            raise InvalidInput('Default categories cannot be deleted.', code='CATEGORY_NOT_EDITABLE')
        item.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
