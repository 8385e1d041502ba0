"""
Models - Shared data types for detection and credential entry.

ElementHandle is the unit everything else works on: a live element plus
the attributes read from it in a single describe() round-trip, so the
scorer never goes back to the browser.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import logging
import re

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IElement

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def identifier_words(value: str) -> str:
    """Insert spaces at camelCase boundaries and in place of underscores."""
    return _CAMEL_BOUNDARY.sub(" ", value).replace("_", " ")


class FieldRole(Enum):
    """Roles an element can play in a login form."""
    USERNAME = "username"
    PASSWORD = "password"
    DOMAIN = "domain"
    SUBMIT_BUTTON = "submit"


class DetectionMethod(Enum):
    """Detection strategies, in default execution order."""
    URL_SPECIFIC = "url_specific"
    COMMON_ATTRIBUTES = "common_attributes"
    XPATH = "xpath"
    SHADOW_DOM = "shadow_dom"


class EntryMode(Enum):
    """How the form reveals its fields."""
    STANDARD = "standard"
    PROGRESSIVE = "progressive"


class EntryState(Enum):
    """States of the credential entry state machine."""
    IDLE = "idle"
    DETECT_MODE = "detect_mode"
    STANDARD_FILL = "standard_fill"
    PROGRESSIVE_FILL = "progressive_fill"
    SUBMIT = "submit"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SelectOption:
    """An <option> of a select element."""
    value: str = ""
    text: str = ""


@dataclass(eq=False)
class ElementHandle:
    """
    A live element with cached attributes.

    Attribute reads never raise: a missing attribute reads as "".

    Attributes:
        element: Live driver element
        tag_name: Lowercase tag name
        attributes: All attributes at capture time
        text: Visible text (trimmed, truncated)
        value: Current value for form controls
        is_visible: Rendered and not hidden
        is_enabled: Not disabled
        options: Options when the element is a select
        form_input_index: Index among the enclosing form's inputs (-1 if none)
        form_input_count: Number of inputs in the enclosing form
        is_last_form_button: Last button of the enclosing form
        in_shadow_root: Element lives inside a shadow root
        has_shadow_root: Element hosts an open shadow root
        bounding_box: Position and size when rendered
    """
    element: "IElement"
    tag_name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    value: str = ""
    is_visible: bool = True
    is_enabled: bool = True
    options: List[SelectOption] = field(default_factory=list)
    form_input_index: int = -1
    form_input_count: int = 0
    is_last_form_button: bool = False
    in_shadow_root: bool = False
    has_shadow_root: bool = False
    bounding_box: Optional[Dict[str, float]] = None

    @classmethod
    def from_description(cls, element: "IElement", data: Dict[str, Any]) -> "ElementHandle":
        """Build a handle from the dictionary returned by IElement.describe()."""
        attributes = {str(k).lower(): "" if v is None else str(v) for k, v in (data.get("attributes") or {}).items()}
        options = [
            SelectOption(value=str(o.get("value") or ""), text=str(o.get("text") or ""))
            for o in data.get("options") or []
        ]
        return cls(
            element=element,
            tag_name=str(data.get("tag") or "").lower(),
            attributes=attributes,
            text=str(data.get("text") or "").strip(),
            value=str(data.get("value") or ""),
            is_visible=bool(data.get("visible", False)),
            is_enabled=bool(data.get("enabled", True)),
            options=options,
            form_input_index=int(data.get("formInputIndex", -1)),
            form_input_count=int(data.get("formInputCount", 0)),
            is_last_form_button=bool(data.get("isLastFormButton", False)),
            in_shadow_root=bool(data.get("inShadowRoot", False)),
            has_shadow_root=bool(data.get("hasShadowRoot", False)),
            bounding_box=data.get("rect"),
        )

    @classmethod
    async def capture(cls, element: "IElement", in_shadow_root: bool = False) -> Optional["ElementHandle"]:
        """
        Describe a live element.

        Args:
            element: Live element
            in_shadow_root: Force the shadow flag (for elements reached through a root)

        Returns:
            The handle, or None if the element is stale or cannot be read
        """
        try:
            data = await element.describe()
        except Exception as e:
            logger.debug(f"Could not describe element: {e}")
            return None
        if not data:
            return None
        handle = cls.from_description(element, data)
        if in_shadow_root:
            handle.in_shadow_root = True
        return handle

    async def refresh(self) -> Optional["ElementHandle"]:
        """Re-read this element; None once it is detached."""
        return await ElementHandle.capture(self.element, in_shadow_root=self.in_shadow_root)

    def attr(self, name: str) -> str:
        """Read an attribute, "" when missing."""
        return self.attributes.get(name.lower(), "") or ""

    @property
    def id(self) -> str:
        return self.attr("id")

    @property
    def name(self) -> str:
        return self.attr("name")

    @property
    def type(self) -> str:
        return self.attr("type").lower()

    @property
    def placeholder(self) -> str:
        return self.attr("placeholder")

    @property
    def aria_label(self) -> str:
        return self.attr("aria-label")

    @property
    def class_name(self) -> str:
        return self.attr("class")

    @property
    def test_id(self) -> str:
        return self.attr("data-testid") or self.attr("data-test-id") or self.attr("data-test")

    @property
    def role(self) -> str:
        return self.attr("role").lower()

    @property
    def is_usable(self) -> bool:
        """Visible and enabled."""
        return self.is_visible and self.is_enabled

    def get(self, attribute: str) -> str:
        """Read a scoring attribute, including the pseudo attributes ``text`` and ``value``."""
        if attribute == "text":
            return self.text
        if attribute == "value":
            return self.attr("value") or (self.value if self.tag_name == "input" and self.type in ("submit", "button") else "")
        if attribute == "data-testid":
            return self.test_id
        return self.attr(attribute)

    def combined_attributes(self, include_text: bool = False) -> str:
        """
        Lowercased id, name, placeholder, aria-label, class and test id joined by spaces.

        camelCase and snake_case identifiers are split into words, so word
        patterns see "ddlDomain" and "tenant_id" as "ddl domain" and "tenant id".
        """
        parts = [self.id, self.name, self.placeholder, self.aria_label, self.class_name, self.test_id]
        if include_text:
            parts.extend([self.get("value"), self.text])
        return " ".join(identifier_words(p) for p in parts if p).lower()

    def describe_short(self) -> str:
        """Compact description for logs."""
        bits = [self.tag_name]
        if self.type:
            bits.append(f"type={self.type}")
        if self.id:
            bits.append(f"id={self.id}")
        if self.name:
            bits.append(f"name={self.name}")
        return "<" + " ".join(bits) + ">"


@dataclass
class CandidateScore:
    """A scored candidate for a role."""
    handle: ElementHandle
    role: FieldRole
    score: int


@dataclass
class DetectedForm:
    """
    Classified login form.

    Attributes:
        username_field: Username/email field
        password_field: Password field
        domain_field: Domain/tenant field, when present
        submit_button: Submit control, when present
        method: Strategy that produced this form
        confidence: Strategy confidence (0-100), informational only
    """
    username_field: Optional[ElementHandle] = None
    password_field: Optional[ElementHandle] = None
    domain_field: Optional[ElementHandle] = None
    submit_button: Optional[ElementHandle] = None
    method: Optional[DetectionMethod] = None
    confidence: int = 0

    @property
    def is_valid(self) -> bool:
        """A form needs at least a username and a password field."""
        return self.username_field is not None and self.password_field is not None

    @property
    def awaits_password(self) -> bool:
        """Only the username is known; the password field is revealed later."""
        return self.username_field is not None and self.password_field is None

    @property
    def element_count(self) -> int:
        return sum(1 for f in self.fields().values() if f is not None)

    def fields(self) -> Dict[FieldRole, Optional[ElementHandle]]:
        return {
            FieldRole.USERNAME: self.username_field,
            FieldRole.PASSWORD: self.password_field,
            FieldRole.DOMAIN: self.domain_field,
            FieldRole.SUBMIT_BUTTON: self.submit_button,
        }

    def ensure_distinct(self) -> None:
        """Raise AmbiguousMatchError if one element fills two roles."""
        from login_autofill.engine.scoring import are_same_element
        from login_autofill.exceptions.detection import AmbiguousMatchError

        present = [(role, h) for role, h in self.fields().items() if h is not None]
        for i, (role_a, a) in enumerate(present):
            for role_b, b in present[i + 1:]:
                if are_same_element(a, b):
                    raise AmbiguousMatchError(
                        f"{a.describe_short()} classified as both {role_a.value} and {role_b.value}",
                        roles=(role_a.value, role_b.value),
                    )


@dataclass
class DetectionAttempt:
    """One strategy run, as recorded by the metrics store."""
    attempt_id: str
    url: str
    host: str
    method: DetectionMethod
    started_at: datetime
    ended_at: Optional[datetime] = None
    success: Optional[bool] = None
    confidence: int = 0
    reason: str = ""
    elements_found: int = 0
    selector_details: Dict[str, str] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds() * 1000


@dataclass
class StepResult:
    """Outcome of one entry step."""
    name: str
    success: bool
    duration_ms: float = 0.0
    error: Optional[str] = None
    result: Any = None
    attempts: int = 1


@dataclass
class Credentials:
    """Values to enter. The password is never logged."""
    username: str
    password: str
    domain: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***', domain={self.domain!r})"


@dataclass
class EntryResult:
    """Outcome of a credential entry sequence."""
    success: bool
    mode: Optional[EntryMode] = None
    state: EntryState = EntryState.IDLE
    steps: List[StepResult] = field(default_factory=list)
    fallback_used: bool = False
    error: Optional[str] = None
    states: List[EntryState] = field(default_factory=list)
