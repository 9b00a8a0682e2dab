"""Audit logging and small request helpers"""
import logging
from decimal import Decimal

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    if hasattr(value, 'pk'):
        return value.pk
    return value


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, organization=None):
    """
    Create an audit log entry

    Args:
        request: request object (for user and IP), optional if user is provided
        action: one of AuditLog.ACTION_CHOICES
        model_name: name of the model being acted upon
        object_id: id of the object
        changes: dictionary of changed fields
        user: optional user override (defaults to request.user)
        object_name: human readable label of the object
        organization: tenant the object belongs to
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            organization=organization,
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=(object_name or '')[:255],
            changes=_json_safe(changes or {}),
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Audit failures never fail the main operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def parse_bool(value):
    if value is None:
        return None
    return str(value).lower() in ('1', 'true', 'yes', 'on')
