import re

AGENT_ID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_agent_id(v) -> bool:
    return isinstance(v, str) and AGENT_ID_RE.fullmatch(v) is not None
