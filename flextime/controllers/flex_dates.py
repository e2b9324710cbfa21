# controllers/flex_dates.py
from flask import Blueprint, jsonify

from flextime.services.flex_date_service import FlexDateService
from flextime.utils.auth import current_caller

flex_dates_bp = Blueprint('flex_dates', __name__)


@flex_dates_bp.route('/upcoming')
def upcoming_flex_dates():
    """Upcoming flex dates with the caller's registration for each."""
    result = FlexDateService.list_upcoming(current_caller())
    return jsonify({'success': True, **result})
