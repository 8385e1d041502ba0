"""
Simple Selectors - Match CSS selectors against cached element handles.

Supports selector lists of compound selectors made of a tag (or ``*``),
``#id``, ``.class``, attribute conditions (``[a]``, ``[a='v']``, ``*=``,
``^=``, ``$=``, ``~=``, ``|=``, optional ``i`` flag) and ``:not([a])``.
Anything else (combinators, positional pseudo-classes) is reported as
unsupported so callers can fall back to a live driver query.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from login_autofill.engine.models import ElementHandle

_COMPOUND = re.compile(
    r"^(?P<tag>[a-zA-Z][\w-]*|\*)?"
    r"(?P<rest>(?:#[\w-]+|\.[\w-]+|\[[^\]]+\]|:not\(\[[^\]]+\]\))*)$"
)
_PART = re.compile(r"#([\w-]+)|\.([\w-]+)|:not\(\[([^\]]+)\]\)|\[([^\]]+)\]")
_ATTRIBUTE = re.compile(
    r"^\s*([\w:-]+)\s*(?:([*^$~|]?=)\s*(?:'([^']*)'|\"([^\"]*)\"|([^\s'\"]+))\s*([iI])?)?\s*$"
)

# HTML attributes whose values browsers compare case-insensitively
_CASE_INSENSITIVE_ATTRIBUTES = {"type"}


@dataclass
class AttributeCondition:
    """One ``[name op value]`` condition."""
    name: str
    op: Optional[str] = None
    value: str = ""
    ignore_case: bool = False
    negated: bool = False

    def matches(self, handle: ElementHandle) -> bool:
        result = self._test(handle)
        return not result if self.negated else result

    def _test(self, handle: ElementHandle) -> bool:
        if self.name not in handle.attributes:
            return False
        if self.op is None:
            return True

        actual = handle.attributes.get(self.name, "")
        expected = self.value
        if self.ignore_case or self.name in _CASE_INSENSITIVE_ATTRIBUTES:
            actual = actual.lower()
            expected = expected.lower()

        if self.op == "=":
            return actual == expected
        if self.op == "*=":
            return bool(expected) and expected in actual
        if self.op == "^=":
            return bool(expected) and actual.startswith(expected)
        if self.op == "$=":
            return bool(expected) and actual.endswith(expected)
        if self.op == "~=":
            return expected in actual.split()
        if self.op == "|=":
            return actual == expected or actual.startswith(expected + "-")
        return False


@dataclass
class CompoundSelector:
    """A tag plus conditions, with no combinators."""
    tag: Optional[str] = None
    conditions: List[AttributeCondition] = field(default_factory=list)

    def matches(self, handle: ElementHandle) -> bool:
        if self.tag and self.tag != "*" and handle.tag_name != self.tag:
            return False
        return all(c.matches(handle) for c in self.conditions)


def _split_list(selector: str) -> List[str]:
    """Split a selector list on top-level commas."""
    parts: List[str] = []
    depth = 0
    quote: Optional[str] = None
    current = ""
    for char in selector:
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += char
    parts.append(current.strip())
    return [p for p in parts if p]


def _parse_attribute(text: str, negated: bool = False) -> Optional[AttributeCondition]:
    match = _ATTRIBUTE.match(text)
    if not match:
        return None
    name, op, single, double, bare, flag = match.groups()
    value = next((v for v in (single, double, bare) if v is not None), "")
    return AttributeCondition(
        name=name.lower(),
        op=op,
        value=value,
        ignore_case=bool(flag),
        negated=negated,
    )


def parse_selector(selector: str) -> Optional[List[CompoundSelector]]:
    """
    Parse a selector list.

    Returns:
        One CompoundSelector per list entry, or None if any entry is unsupported
    """
    compounds: List[CompoundSelector] = []
    for part in _split_list(selector):
        match = _COMPOUND.match(part)
        if not match or not part:
            return None
        compound = CompoundSelector(tag=(match.group("tag") or "").lower() or None)
        for id_, class_, not_attr, attr in _PART.findall(match.group("rest")):
            if id_:
                compound.conditions.append(AttributeCondition("id", "=", id_))
            elif class_:
                compound.conditions.append(AttributeCondition("class", "~=", class_))
            else:
                condition = _parse_attribute(not_attr or attr, negated=bool(not_attr))
                if condition is None:
                    return None
                compound.conditions.append(condition)
        compounds.append(compound)
    return compounds or None


def matches(handle: ElementHandle, selector: str) -> bool:
    """True if the handle matches the selector (False when unsupported)."""
    compounds = parse_selector(selector)
    if not compounds:
        return False
    return any(c.matches(handle) for c in compounds)


def filter_handles(handles: Sequence[ElementHandle], selector: str) -> Optional[List[ElementHandle]]:
    """
    Handles matching ``selector``, in order.

    Returns:
        Matching handles, or None if the selector is unsupported
    """
    compounds = parse_selector(selector)
    if compounds is None:
        return None
    return [h for h in handles if any(c.matches(h) for c in compounds)]
