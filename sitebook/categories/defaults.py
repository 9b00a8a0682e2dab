"""
Default category types and the items every new organization starts with
"""
import logging

from django.db import transaction

from .models import CategoryType, CategoryItem

logger = logging.getLogger(__name__)

EXPENSE_TYPE = 'expense_type'
MATERIAL_TYPE = 'material_type'
LABOUR_TYPE = 'labour_type'
SUB_WORK_TYPE = 'sub_work_type'
PROJECT_TYPE = 'project_type'

DEFAULT_CATEGORY_TYPES = [
    {
        'key': EXPENSE_TYPE,
        'label': 'Expense Types',
        'items': ['Material', 'Labour', 'Sub Work'],
    },
    {'key': MATERIAL_TYPE, 'label': 'Material Types', 'items': []},
    {'key': LABOUR_TYPE, 'label': 'Labour Types', 'items': []},
    {'key': SUB_WORK_TYPE, 'label': 'Sub Work Types', 'items': []},
    {'key': PROJECT_TYPE, 'label': 'Project Types', 'items': []},
]


def ensure_category_types():
    """Create any missing global category types and return them keyed by key"""
    types = {}
    for index, definition in enumerate(DEFAULT_CATEGORY_TYPES):
        category_type, created = CategoryType.objects.get_or_create(
            key=definition['key'],
            defaults={'label': definition['label'], 'sort_order': index},
        )
        if created:
            logger.info(f"Created category type {category_type.key}")
        types[category_type.key] = category_type
    return types


@transaction.atomic
def seed_organization_categories(organization):
    """Give an organization its default, non-editable category items"""
    types = ensure_category_types()
    created = []
    for definition in DEFAULT_CATEGORY_TYPES:
        for index, name in enumerate(definition['items']):
            item, was_created = CategoryItem.objects.get_or_create(
                organization=organization,
                category_type=types[definition['key']],
                name=name,
                defaults={'is_editable': False, 'sort_order': index},
            )
            if was_created:
                created.append(item)
    return created
