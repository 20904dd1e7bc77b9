import re

from postviews.errors import InvalidIdentifierError

CONTENT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:-]{0,127}$")


def is_content_id(value: str) -> bool:
    return bool(CONTENT_ID_RE.fullmatch(value))


def to_content_id(value: object) -> str:
    """Normalize a host-supplied identifier to the stored string form.

    Positive integers (as most CMS primary keys are) become their decimal
    string. Raises InvalidIdentifierError for anything else that is not a
    well-formed identifier string.
    """
    if isinstance(value, bool):
        raise InvalidIdentifierError(f"Invalid content identifier: {value!r}")
    if isinstance(value, int):
        if value <= 0:
            raise InvalidIdentifierError(f"Invalid content identifier: {value!r}")
        return str(value)
    if isinstance(value, str) and is_content_id(value):
        return value
    raise InvalidIdentifierError(f"Invalid content identifier: {value!r}")
