"""Answer values and their canonical string form.

A stored answer is whatever JSON the respondent sent for a question id.
``parse_answer`` classifies it into one of three variants and
``reduce_answer`` turns a variant into the string shown in listings and
written into export cells:

- ``PlainText``: radio and text questions send a bare string.
- ``ImageSelection``: image-select questions send
  ``{"image": str | null, "reasons": [...], "customReason": str?}``.
  Non-string reasons are stringified; a non-string ``customReason`` is ignored.
- ``RawAnswer``: anything else, rendered as compact JSON.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple, Union

NO_IMAGE = "null"


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class ImageSelection:
    image: Optional[str]
    reasons: Tuple[str, ...] = ()
    custom_reason: Optional[str] = None


@dataclass(frozen=True)
class RawAnswer:
    value: Any


Answer = Union[PlainText, ImageSelection, RawAnswer]


def _ordered_unique(items: Iterable[str]) -> Tuple[str, ...]:
    seen = {}
    for item in items:
        seen.setdefault(item, None)
    return tuple(seen)


def _compact_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _text(value: Any, null: str = NO_IMAGE) -> str:
    # scalar to string the way the stored JSON reads: true, 3, null
    if isinstance(value, str):
        return value
    if value is None:
        return null
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return _compact_json(value)


def _is_image_selection(value: Any) -> bool:
    return isinstance(value, dict) and "image" in value and isinstance(value.get("reasons"), list)


def parse_answer(value: Any) -> Answer:
    if isinstance(value, str):
        return PlainText(value)
    if _is_image_selection(value):
        custom = value.get("customReason")
        return ImageSelection(
            image=None if value["image"] is None else _text(value["image"]),
            reasons=_ordered_unique(_text(r, null="") for r in value["reasons"]),
            custom_reason=custom if isinstance(custom, str) else None,
        )
    return RawAnswer(value)


def reduce_answer(answer: Answer) -> str:
    if isinstance(answer, PlainText):
        return answer.text
    if isinstance(answer, ImageSelection):
        image = answer.image if answer.image is not None else NO_IMAGE
        text = f"Image: {image} | Reasons: {', '.join(answer.reasons)}"
        if answer.custom_reason:
            text += f" | Custom: {answer.custom_reason}"
        return text
    if isinstance(answer, RawAnswer):
        return _compact_json(answer.value)
    raise TypeError(f"Unsupported answer variant: {type(answer).__name__}")


def render_answer(value: Any) -> str:
    """Render a stored answer value; unanswered (None) becomes an empty cell."""
    if value is None:
        return ""
    return reduce_answer(parse_answer(value))
