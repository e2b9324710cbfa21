# services/stats_service.py
import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from flextime.extensions import db
from flextime.models import FlexDate, Registration, RoleType, Session, User
from flextime.utils.auth import require_role


class StatsService:

    @staticmethod
    def get_admin_stats(caller, now=None):
        """
        Get dashboard statistics for administrators.

        Returns:
            dict: user counts, upcoming flex dates, session fill and the number
                  of students without a selection for the next flex date
        """
        require_role(caller, RoleType.ADMIN)
        today = (now or datetime.now()).date()
        lookahead = current_app.config.get('STATS_LOOKAHEAD_DAYS', 30)
        stats = {}

        # Users by role
        role_counts = dict(
            db.session.query(User.role, func.count(User.id))
            .filter(User.is_active.is_(True))
            .group_by(User.role)
            .all()
        )
        stats['users'] = {
            'total': sum(role_counts.values()),
            'students': role_counts.get(RoleType.STUDENT, 0),
            'teachers': role_counts.get(RoleType.TEACHER, 0),
            'admins': role_counts.get(RoleType.ADMIN, 0)
        }

        stats['upcoming_flex_dates'] = (
            db.session.query(func.count(FlexDate.id))
            .filter(FlexDate.date >= today, FlexDate.date <= today + timedelta(days=lookahead))
            .scalar()
        )

        # Session fill from today on
        enrolled = (
            db.session.query(Registration.session_id, func.count(Registration.id).label('enrolled'))
            .group_by(Registration.session_id)
            .subquery()
        )
        fill = (
            db.session.query(Session.capacity, func.coalesce(enrolled.c.enrolled, 0))
            .outerjoin(enrolled, enrolled.c.session_id == Session.id)
            .filter(Session.date >= today)
            .all()
        )
        stats['sessions'] = {
            'upcoming': len(fill),
            'full': sum(1 for capacity, count in fill if count >= capacity),
            'empty': sum(1 for _, count in fill if count == 0)
        }

        # Students still without a selection for the next flex date
        next_flex = (
            db.session.query(FlexDate)
            .filter(FlexDate.date >= today)
            .order_by(FlexDate.date.asc())
            .first()
        )
        stats['next_flex_date'] = None
        if next_flex:
            registered = (
                db.session.query(func.count(func.distinct(Registration.student_id)))
                .filter(Registration.date == next_flex.date)
                .scalar()
            )
            stats['next_flex_date'] = {
                'date': next_flex.date.isoformat(),
                'registered': registered,
                'unregistered': max(stats['users']['students'] - registered, 0)
            }

        logging.getLogger('stats_service').debug(f"Admin stats computed for {today}")
        return stats
