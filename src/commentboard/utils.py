import re
from datetime import UTC, datetime

USER_NAME_RE = re.compile(r"^[a-zA-Z0-9]+$")


def is_user_name(value: str) -> bool:
    return bool(USER_NAME_RE.fullmatch(value))


def now() -> datetime:
    # MongoDB keeps millisecond precision; truncate so stored and returned values agree
    value = datetime.now(UTC)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)
