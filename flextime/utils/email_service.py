# utils/email_service.py
"""
SMTP delivery of student-facing notices.
Messages go out synchronously within the request. A failed delivery is logged
and reported back to the caller, never retried.
"""

import logging
import smtplib
from collections import deque
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, render_template

REQUIRED_MAIL_SETTINGS = ('MAIL_SERVER', 'MAIL_PORT', 'MAIL_USERNAME', 'MAIL_PASSWORD', 'MAIL_DEFAULT_SENDER')

# Newest suppressed messages kept in memory
OUTBOX_LIMIT = 100


class EmailResult:
    """Outcome of a single delivery attempt."""

    def __init__(self, recipient, subject, success, error=None):
        self.recipient = recipient
        self.subject = subject
        self.success = success
        self.error = error
        self.attempted_at = datetime.now()

    def to_dict(self):
        return {
            'recipient': self.recipient,
            'subject': self.subject,
            'success': self.success,
            'error': self.error,
            'attempted_at': self.attempted_at.isoformat()
        }


class EmailService:
    def __init__(self, app=None):
        self.logger = logging.getLogger('email_service')
        self.outbox = deque(maxlen=OUTBOX_LIMIT)

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        for issue in self.config_issues(app):
            self.logger.warning(f"Email configuration: {issue}")

    @staticmethod
    def config_issues(app):
        """List problems with the MAIL_* settings of an app. Empty when usable."""
        issues = []
        config = app.config

        if config.get('MAIL_SUPPRESS_SEND'):
            issues.append("MAIL_SUPPRESS_SEND is on, messages are kept in the outbox")

        missing = [key for key in REQUIRED_MAIL_SETTINGS if not config.get(key)]
        if missing:
            issues.append(f"missing {', '.join(missing)}")

        use_ssl, use_tls = config.get('MAIL_USE_SSL'), config.get('MAIL_USE_TLS')
        if use_ssl and use_tls:
            issues.append("MAIL_USE_SSL and MAIL_USE_TLS are both set, SSL wins")
        elif config.get('MAIL_PORT') == 465 and use_tls:
            issues.append("port 465 expects SSL, use 587 for STARTTLS")
        elif config.get('MAIL_PORT') == 587 and use_ssl:
            issues.append("port 587 expects STARTTLS, use 465 for SSL")

        return issues

    def send_removal_notice(self, student_email, student_name, session_title, teacher_name,
                            room, flex_date, deadline):
        """
        Tell a student they were removed from a session and must pick another.

        Args:
            student_email: Recipient address
            student_name: Student display name
            session_title: Title of the session they were removed from
            teacher_name: Teacher running the session
            room: Room number of the session
            flex_date: date of the flex period
            deadline: selection deadline (datetime) for that date

        Returns:
            EmailResult: outcome of the single delivery attempt
        """
        subject = f"Flex Time Session Update - {flex_date.strftime('%m/%d/%Y')}"
        context = {
            'student_name': student_name,
            'session_title': session_title,
            'teacher_name': teacher_name,
            'room': room,
            'flex_date': flex_date,
            'deadline': deadline,
            'site_name': current_app.config.get('SITE_NAME', 'Flex Time'),
            'app_url': current_app.config.get('BASE_URL'),
        }

        try:
            self._deliver(
                student_email,
                subject,
                text_body=render_template('emails/removal_notice.txt', **context),
                html_body=render_template('emails/removal_notice.html', **context)
            )
        except Exception as e:
            self.logger.error(f"Removal email to {student_email} failed: {e}", exc_info=True)
            return EmailResult(student_email, subject, False, error=str(e))

        self.logger.info(f"Removal email sent to {student_email}")
        return EmailResult(student_email, subject, True)

    def _deliver(self, recipient, subject, text_body, html_body):
        config = current_app.config

        message = MIMEMultipart('alternative')
        message['Subject'] = subject
        message['From'] = config['MAIL_DEFAULT_SENDER']
        message['To'] = recipient
        message.attach(MIMEText(text_body, 'plain'))
        message.attach(MIMEText(html_body, 'html'))

        if config.get('MAIL_SUPPRESS_SEND'):
            self.outbox.append(message)
            self.logger.debug(f"Email to {recipient} kept in outbox")
            return

        server = self._create_smtp_connection()
        try:
            if config.get('MAIL_USERNAME'):
                server.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
            server.send_message(message)
        finally:
            server.quit()

    def _create_smtp_connection(self):
        config = current_app.config
        host, port = config['MAIL_SERVER'], config['MAIL_PORT']
        timeout = config.get('MAIL_TIMEOUT', 30)

        if config.get('MAIL_USE_SSL'):
            return smtplib.SMTP_SSL(host, port, timeout=timeout)

        server = smtplib.SMTP(host, port, timeout=timeout)
        if config.get('MAIL_USE_TLS'):
            server.starttls()
        return server
