import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from sitebook.core.exceptions import NotFound
from sitebook.core.permissions import require_permission
from sitebook.core.responses import success_response
from sitebook.core.tenancy import get_organization
from .overview import build_overview, OVERVIEW_SECTIONS

logger = logging.getLogger('sitebook.reports')


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('projects', 'read')])
def overview(request):
    """Organization dashboard: KPIs, project P&L, credits, outstanding items and alerts"""
    organization = get_organization(request)
    return success_response(build_overview(organization.pk))


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('projects', 'read')])
def overview_section(request, section):
    """One block of the dashboard, served from the same cached payload"""
    if section not in OVERVIEW_SECTIONS:
        raise NotFound(f'Unknown overview section: {section}')
    organization = get_organization(request)
    return success_response(build_overview(organization.pk)[section])
