"""
Locating items inside a page's list by id or by a loose descriptor.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Optional, Sequence

from pydantic import BeforeValidator

from ..core.config import get_settings
from .results import ErrorKind

# Serialized JS "no value" that reaches us as a real string
_NULLISH_IDS = {"", "undefined"}


def clean_id(value: Any) -> Optional[str]:
    """Treat "undefined" and blank strings as no id at all."""
    if value is None:
        return None
    text = str(value).strip()
    if text in _NULLISH_IDS:
        return None
    return text


EntityId = Annotated[Optional[str], BeforeValidator(clean_id)]


@dataclass
class Resolution:
    index: int = -1
    item: Optional[dict] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @property
    def found(self) -> bool:
        return self.item is not None


def resolve_item(
    items: Sequence[dict],
    item_id: Optional[str] = None,
    descriptor: Optional[str] = None,
    fields: Sequence[str] = ("name",),
    noun: str = "item",
    policy: Optional[str] = None,
) -> Resolution:
    """
    Find one item. An exact id wins; otherwise `descriptor` is matched as a
    case-insensitive substring of any of `fields`.

    Policy for several fuzzy matches:
      "first"  → the first in list order
      "unique" → an exact (case-insensitive) match if there is exactly one,
                 else AMBIGUOUS
    """
    item_id = clean_id(item_id)
    if item_id:
        for i, item in enumerate(items):
            if str(item.get("id")) == item_id:
                return Resolution(index=i, item=item)
        if not descriptor:
            return Resolution(error_kind=ErrorKind.NOT_FOUND, message=f"No {noun} with id {item_id}")

    needle = (descriptor or "").strip().lower()
    if not needle:
        return Resolution(error_kind=ErrorKind.VALIDATION, message=f"Say which {noun} (id or name)")

    matches = [
        (i, item) for i, item in enumerate(items)
        if any(needle in str(item.get(f) or "").lower() for f in fields)
    ]
    if not matches:
        return Resolution(error_kind=ErrorKind.NOT_FOUND, message=f'No {noun} matching "{descriptor}"')
    if len(matches) == 1:
        i, item = matches[0]
        return Resolution(index=i, item=item)

    policy = (policy or get_settings().fuzzy_match_policy).lower()
    if policy == "unique":
        exact = [
            (i, item) for i, item in matches
            if any(str(item.get(f) or "").strip().lower() == needle for f in fields)
        ]
        if len(exact) == 1:
            i, item = exact[0]
            return Resolution(index=i, item=item)
        labels = ", ".join(str(item.get(fields[0]) or item.get("id")) for _, item in matches)
        return Resolution(
            error_kind=ErrorKind.AMBIGUOUS,
            message=f'"{descriptor}" matches several {noun}s: {labels}. Which one?',
        )

    i, item = matches[0]
    return Resolution(index=i, item=item)
