from datetime import datetime, timedelta

from clinic.core.security import create_session_token


def auth_headers(user):
    token = create_session_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token.access_token}"}


def days_from_now(days, hour=10):
    """Whole-hour naive UTC timestamp ``days`` away from today."""
    today = datetime.utcnow().replace(hour=hour, minute=0, second=0, microsecond=0)
    return today + timedelta(days=days)
