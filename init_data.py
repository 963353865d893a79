"""
Initialize database with default rooms and teams, plus the create-admin
command used to bootstrap an admin account after deployment.
"""
import logging

import click

from extensions import db
from models import User, Room, Team, ROLE_ADMIN

logger = logging.getLogger(__name__)

DEFAULT_ROOMS = [
    {'name': 'Conference Room 1', 'capacity': 12},
    {'name': 'Cabin 1', 'capacity': 4},
]

DEFAULT_TEAMS = ['Engineering', 'Marketing', 'Sales', 'HR', 'Finance']


def create_initial_data():
    """Seed rooms and teams when their tables are empty."""
    try:
        if Room.query.count() == 0:
            for room_data in DEFAULT_ROOMS:
                db.session.add(Room(**room_data))
                logger.info(f"Created room: {room_data['name']}")

        if Team.query.count() == 0:
            for name in DEFAULT_TEAMS:
                db.session.add(Team(name=name))
            logger.info(f"Created teams: {', '.join(DEFAULT_TEAMS)}")

        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Database initialization error")
        raise


def create_admin_user(email, password, first_name='Admin', last_name='User'):
    """Create an admin account, or promote and reactivate an existing one."""
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user:
        user.role = ROLE_ADMIN
        user.is_active = True
        if password:
            user.set_password(password)
    else:
        user = User(email=email, first_name=first_name, last_name=last_name,
                    role=ROLE_ADMIN, is_active=True)
        user.set_password(password)
        db.session.add(user)
    db.session.commit()
    return user


@click.command('create-admin')
@click.argument('email')
@click.argument('password')
@click.option('--first-name', default='Admin')
@click.option('--last-name', default='User')
def create_admin_command(email, password, first_name, last_name):
    """Create or promote an admin account."""
    user = create_admin_user(email, password, first_name, last_name)
    click.echo(f'Admin account ready: {user.email} (id {user.id})')


@click.command('seed')
def seed_command():
    """Seed default rooms and teams."""
    create_initial_data()
    click.echo('Default rooms and teams are in place.')
