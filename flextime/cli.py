# cli.py
"""
Flask CLI commands for the flex time scheduler.
"""

import click
from flask.cli import with_appcontext

from flextime.errors import FlexTimeError
from flextime.extensions import db
from flextime.models import GRADES


@click.command("init-db")
@click.option("--drop", is_flag=True, help="Drop existing tables first")
@with_appcontext
def init_database(drop):
    """Create all database tables."""
    from flextime import models  # noqa: F401

    if drop:
        click.confirm("This deletes all data. Continue?", abort=True)
        db.drop_all()
        click.echo("Dropped all tables.")

    db.create_all()
    click.echo("Database tables created.")


@click.command("create-user")
@click.argument("email")
@click.argument("name")
@click.option("--role", type=click.Choice(["student", "teacher", "admin"]), default="student", show_default=True)
@click.option("--grade", type=click.IntRange(min(GRADES), max(GRADES)), help="Grade for students")
@click.option("--homeroom", help="Homeroom number for students")
@click.password_option()
@with_appcontext
def create_user(email, name, role, grade, homeroom, password):
    """
    Create a local account.

    Example usage:
        flask create-user admin@school.edu "Pat Admin" --role admin
        flask create-user jo@school.edu "Jo Student" --grade 10 --homeroom 204
    """
    from flextime.models import RoleType, User

    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo(f"Error: User {email} already exists", err=True)
        return

    user = User(email=email, name=name, role=role)
    if role == RoleType.STUDENT:
        user.grade = grade
        user.homeroom = homeroom
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error creating user: {str(e)}", err=True)
        raise

    click.echo(f"Created {role} {email} (id {user.id})")


@click.command("assign-homerooms")
@click.argument("flex_date", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--admin-email", required=True, help="Admin account recorded in the audit log")
@with_appcontext
def assign_homerooms(flex_date, admin_email):
    """
    Assign students without a registration to their homeroom session.

    Example usage:
        flask assign-homerooms 2025-01-10 --admin-email admin@school.edu
    """
    from flextime.models import User
    from flextime.services.flex_date_service import FlexDateService
    from flextime.services.registration_service import RegistrationService
    from flextime.utils.auth import Caller

    admin = User.query.filter_by(email=admin_email.strip().lower()).first()
    if not admin:
        click.echo(f"Error: No user with email {admin_email}", err=True)
        return

    day = flex_date.date()
    try:
        target = FlexDateService.get_by_date(day)
        result = RegistrationService.assign_homerooms(Caller.from_user(admin), target.id)
    except FlexTimeError as e:
        click.echo(f"Error: {e.message}", err=True)
        return

    click.echo(f"Assigned {result['assigned']} student(s), skipped {result['skipped']} for {day}")


def register_cli_commands(app):
    """
    Register all CLI commands with the Flask application.

    Args:
        app: Flask application instance
    """
    app.cli.add_command(init_database)
    app.cli.add_command(create_user)
    app.cli.add_command(assign_homerooms)
