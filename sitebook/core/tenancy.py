"""
Organization context for a request

The acting organization comes from the X-Organization-Id header and must match
one of the authenticated user's memberships. Views read it once and pass the
Organization explicitly to every store call.
"""
import logging

from sitebook.core.exceptions import OrganizationContextMissing
from sitebook.core.models import OrganizationMember

logger = logging.getLogger(__name__)

ORGANIZATION_HEADER = 'HTTP_X_ORGANIZATION_ID'

_CACHE_ATTR = '_sitebook_membership'


def resolve_membership(request):
    """Return the OrganizationMember acting on this request or raise 403"""
    cached = getattr(request, _CACHE_ATTR, None)
    if cached is not None:
        return cached

    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        raise OrganizationContextMissing('Authentication is required for organization access.')

    raw_id = request.META.get(ORGANIZATION_HEADER)
    if not raw_id:
        raise OrganizationContextMissing()
    try:
        organization_id = int(raw_id)
    except (TypeError, ValueError):
        raise OrganizationContextMissing(f'Invalid organization id: {raw_id}')

    membership = (
        OrganizationMember.objects
        .select_related('organization', 'role')
        .filter(organization_id=organization_id, user=user)
        .first()
    )
    if membership is None:
        logger.warning(f"User {user.pk} has no membership in organization {organization_id}")
        raise OrganizationContextMissing('You are not a member of this organization.')

    setattr(request, _CACHE_ATTR, membership)
    return membership


def get_organization(request):
    return resolve_membership(request).organization
