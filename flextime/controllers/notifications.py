# controllers/notifications.py
from flask import Blueprint, current_app, jsonify, request

from flextime.controllers.forms import MarkReadForm
from flextime.errors import ValidationError
from flextime.services.notification_service import NotificationService
from flextime.utils.auth import current_caller

notifications_bp = Blueprint('notifications', __name__)


@notifications_bp.route('/my-notifications')
def my_notifications():
    unread_only = request.args.get('unread_only', 'false').lower() == 'true'
    default_limit = current_app.config.get('NOTIFICATION_LIST_LIMIT', 50)
    limit = min(request.args.get('limit', default_limit, type=int), default_limit)

    notifications, unread_count = NotificationService.list_for_student(
        current_caller(), unread_only=unread_only, limit=limit
    )
    return jsonify({
        'success': True,
        'notifications': [n.to_dict() for n in notifications],
        'unread_count': unread_count
    })


@notifications_bp.route('/my-notifications', methods=['PATCH'])
def mark_notifications_read():
    """Mark one notification, or all of them, as read."""
    form = MarkReadForm().validate_or_raise()
    caller = current_caller()

    if form.mark_all.data:
        updated = NotificationService.mark_all_read(caller)
        return jsonify({'success': True, 'updated': updated})

    if not form.notification_id.data:
        raise ValidationError('notification_id or mark_all is required')

    notification = NotificationService.mark_read(caller, form.notification_id.data)
    return jsonify({'success': True, 'notification': notification.to_dict()})
