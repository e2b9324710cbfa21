# tests/test_email_service.py
from datetime import date, datetime

from flextime.extensions import email_service
from flextime.utils.email_service import OUTBOX_LIMIT


def send_notice(n):
    return email_service.send_removal_notice(
        f'student{n}@westfield.edu', f'Student {n}', 'Robotics Lab', 'Terry Teacher',
        '101', date(2025, 1, 10), datetime(2025, 1, 10, 8, 0)
    )


def test_suppressed_messages_go_to_outbox(app):
    result = send_notice(1)

    assert result.success is True
    assert email_service.outbox[0]['To'] == 'student1@westfield.edu'
    assert email_service.outbox[0]['Subject'] == 'Flex Time Session Update - 01/10/2025'


def test_outbox_keeps_only_newest_messages(app):
    for n in range(OUTBOX_LIMIT + 5):
        send_notice(n)

    assert len(email_service.outbox) == OUTBOX_LIMIT
    assert email_service.outbox[0]['To'] == 'student5@westfield.edu'
    assert email_service.outbox[-1]['To'] == f'student{OUTBOX_LIMIT + 4}@westfield.edu'


def test_config_issues_flag_missing_settings(app):
    app.config['MAIL_USERNAME'] = None

    issues = email_service.config_issues(app)

    assert any('MAIL_USERNAME' in issue for issue in issues)
