from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UidConfig:
    """Fixed UIDs of one event class."""

    # e.g. 1 for System Activity
    category_uid: int
    # e.g. 1001 for File System Activity
    class_uid: int


def prefill_uids(data: dict[str, Any], config: UidConfig) -> dict[str, Any]:
    """
    Return a copy of an event payload with derivable UID fields filled in.

    - category_uid and class_uid come from the event class.
    - type_uid is class_uid * 100 + activity_id, using the payload's class_uid (which
      may have been supplied by the caller).

    Values supplied by the caller always win. Only absent or None fields are filled.
    """
    result = dict(data)

    if result.get("category_uid") is None:
        result["category_uid"] = config.category_uid

    if result.get("class_uid") is None:
        result["class_uid"] = config.class_uid

    activity_id = result.get("activity_id")
    class_uid = result["class_uid"]
    # Anything but integers is left for field validation to reject
    if (
        result.get("type_uid") is None
        and _is_int(activity_id)
        and _is_int(class_uid)
    ):
        result["type_uid"] = class_uid * 100 + activity_id

    return result


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
