# tests/helpers.py
from datetime import date, datetime

from flextime.utils.auth import Caller

FLEX_DAY = date(2025, 1, 10)
DEADLINE = datetime(2025, 1, 10, 8, 0)
BEFORE_DEADLINE = datetime(2025, 1, 8, 12, 0)
PASSWORD = 'correct-horse-battery'


def caller(user):
    return Caller.from_user(user)


def login(client, user, password=PASSWORD):
    """Log the test client in as user. Switching users always goes through this."""
    response = client.post('/api/auth/login', json={'email': user.email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response
