import re
from typing import Any

from formflow.agents.models import FieldRequirement


def normalize_key(key: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", key.lower()).strip("_")


def is_present(value: Any) -> bool:
    """A submitted value counts only when it carries content."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True


def find_value(
    requirement: FieldRequirement, user_data: dict[str, Any]
) -> tuple[str, Any, float] | None:
    """Locate the submitted value for a requirement.

    Returns the source key, the value exactly as submitted and a match
    confidence, or None when the user did not provide it.
    """
    if requirement.field in user_data and is_present(user_data[requirement.field]):
        return requirement.field, user_data[requirement.field], 1.0

    wanted = {normalize_key(requirement.field), normalize_key(requirement.description)}
    wanted.discard("")
    for key, value in user_data.items():
        if normalize_key(str(key)) in wanted and is_present(value):
            return str(key), value, 0.9
    return None
