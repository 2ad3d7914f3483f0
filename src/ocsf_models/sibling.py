from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

OTHER_ID = 99


@dataclass(frozen=True)
class SiblingPair:
    """An enum "_id" attribute and the label attribute that carries its caption."""

    id_field: str
    label_field: str
    labels: Mapping[int, str]

    def label_for(self, id_value: int) -> str | None:
        return self.labels.get(id_value)

    def id_for(self, label: str) -> int | None:
        """Case-insensitive reverse lookup of a label."""
        folded = label.casefold()
        for id_value, canonical in self.labels.items():
            if canonical.casefold() == folded:
                return id_value
        return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def reconcile_siblings(
    data: dict[str, Any], pairs: Iterable[SiblingPair]
) -> dict[str, Any]:
    """
    Return a copy of an event payload with each id/label pair made consistent.

    ====================  ==============  ==========================================
    id                    label           result
    ====================  ==============  ==========================================
    known id              matching label  both kept, label normalized to canonical
    known id              other label     ValueError
    99 (Other)            any label       label preserved as-is
    known id              absent          label filled in from the id
    absent                known label     id filled in, label normalized
    absent                unknown label   id set to 99 (Other), label preserved
    absent                absent          unchanged
    ====================  ==============  ==========================================

    An id that has no label (a vendor value, for example) is left for field
    validation to accept or reject.
    """
    result = dict(data)

    for pair in pairs:
        id_value = result.get(pair.id_field)
        label_value = result.get(pair.label_field)
        has_id = id_value is not None
        has_label = label_value is not None and label_value != ""

        if has_id and has_label:
            id_int = _as_int(id_value)
            if id_int == OTHER_ID:
                result[pair.id_field] = OTHER_ID
                continue
            expected = pair.label_for(id_int) if id_int is not None else None
            if expected is not None:
                if expected.casefold() != str(label_value).casefold():
                    raise ValueError(
                        f"{pair.id_field}={id_int} ({expected}) does not match"
                        f" {pair.label_field}={label_value!r}"
                    )
                result[pair.label_field] = expected
        elif has_id:
            id_int = _as_int(id_value)
            label = pair.label_for(id_int) if id_int is not None else None
            if label is not None:
                result[pair.label_field] = label
        elif has_label:
            label = str(label_value)
            id_int = pair.id_for(label)
            if id_int is not None:
                result[pair.id_field] = id_int
                result[pair.label_field] = pair.labels[id_int]
            else:
                result[pair.id_field] = OTHER_ID

    return result
