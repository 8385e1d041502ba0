"""
Element Scorer - Rank candidate elements for each login-form role.

Every role is scored by the same pipeline, parameterized by a RoleProfile:
1. Weighted fuzzy match of each attribute against the role's terms
2. Word-token bonuses for free-text attributes (placeholder, aria-label, text)
3. Pattern rules: word-boundary regexes adding or subtracting points
4. Structural rules specific to the role (tag, type, form position, options)

Only positive scores are retained; ties keep first-seen order.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from login_autofill.config.settings import ScoringSettings
from login_autofill.engine.fuzzy import score_attribute, split_words
from login_autofill.engine.models import CandidateScore, ElementHandle, FieldRole

logger = logging.getLogger(__name__)


def _rx(words: str) -> "re.Pattern[str]":
    return re.compile(rf"\b({words})\b", re.IGNORECASE)


@dataclass(frozen=True)
class PatternRule:
    """Adds ``delta`` when ``pattern`` matches the combined attributes."""
    pattern: "re.Pattern[str]"
    delta: int


@dataclass(frozen=True)
class RoleProfile:
    """Vocabulary and rules for one role."""
    role: FieldRole
    terms: Tuple[str, ...]
    patterns: Tuple[PatternRule, ...]
    include_text: bool = False


DOMAIN_TERM = _rx(
    "domain|tenant|organization|organisation|org|company|corp|corporation"
    "|realm|authority|enterprise|workspace"
)
USER_TERM = _rx("username|user|userid|login|email|account")
PASSWORD_TERM = _rx("password|pass|pwd|passwd|passphrase")
SEARCH_TERM = _rx("search|query|filter")
PRIMARY_CLASS = _rx("primary|btn-primary|main|default")

ROLE_PROFILES: Dict[FieldRole, RoleProfile] = {
    FieldRole.USERNAME: RoleProfile(
        role=FieldRole.USERNAME,
        terms=("username", "user", "login", "email", "account", "userid"),
        patterns=(
            PatternRule(_rx("email|e-?mail|mail"), 25),
            PatternRule(_rx("login|log-?in|signin|sign-?in"), 20),
            PatternRule(_rx("user|username|userid|user-?id"), 20),
            PatternRule(_rx("account|acct"), 15),
            PatternRule(_rx("password|pass|pwd|confirm|repeat|verify"), -30),
            PatternRule(SEARCH_TERM, -20),
        ),
    ),
    FieldRole.PASSWORD: RoleProfile(
        role=FieldRole.PASSWORD,
        terms=("password", "pass", "pwd", "passwd", "passphrase", "pin", "secret"),
        patterns=(
            PatternRule(_rx("password|pass-?word"), 30),
            PatternRule(_rx("pass|pwd|passwd"), 25),
            PatternRule(_rx("secret|pin|passphrase|auth"), 20),
            PatternRule(_rx("confirm|verify|repeat|again|2nd|second"), 15),
            PatternRule(_rx("username|user|email|login|account"), -40),
            PatternRule(_rx("search|query|filter|domain|tenant"), -25),
        ),
    ),
    FieldRole.DOMAIN: RoleProfile(
        role=FieldRole.DOMAIN,
        terms=("domain", "tenant", "organization", "org", "company", "realm", "authority"),
        patterns=(
            PatternRule(_rx("domain|tenant"), 30),
            PatternRule(_rx("organization|organisation|org"), 25),
            PatternRule(_rx("company|corp|corporation"), 20),
            PatternRule(_rx("realm|authority|enterprise|workspace"), 20),
            PatternRule(_rx("username|user|password|pass|email|login"), -100),
            PatternRule(_rx("search|query|filter|submit"), -50),
        ),
    ),
    FieldRole.SUBMIT_BUTTON: RoleProfile(
        role=FieldRole.SUBMIT_BUTTON,
        terms=("login", "submit", "signin", "sign-in", "enter", "go", "connect", "continue"),
        patterns=(
            PatternRule(_rx("login|log-?in|signin|sign-?in"), 30),
            PatternRule(_rx("submit|send"), 25),
            PatternRule(_rx("enter|go|continue|proceed|connect"), 20),
            PatternRule(_rx("authenticate|auth|access"), 15),
            PatternRule(_rx("cancel|reset|clear|back|previous"), -30),
            PatternRule(_rx("register|signup|sign-?up|create|forgot"), -25),
            PatternRule(_rx("search|filter|sort|edit|delete"), -20),
        ),
        include_text=True,
    ),
}


# =============================================================================
# EXCLUSION
# =============================================================================

def are_same_element(a: Optional[ElementHandle], b: Optional[ElementHandle]) -> bool:
    """
    True when two handles refer to the same DOM element.

    Same live reference, or same tag with an equal non-empty id, or same
    tag with an equal non-empty name when the ids do not conflict.
    """
    if a is None or b is None:
        return False
    if a is b or a.element is b.element:
        return True
    if a.tag_name != b.tag_name:
        return False
    if a.id and b.id:
        return a.id == b.id
    if a.name and b.name:
        return a.name == b.name
    return False


def is_excluded(handle: ElementHandle, exclude: Iterable[Optional[ElementHandle]]) -> bool:
    return any(are_same_element(handle, other) for other in exclude if other is not None)


# =============================================================================
# DROPDOWN HEURISTICS
# =============================================================================

def is_likely_username_dropdown(handle: ElementHandle) -> bool:
    """A select that looks like a user picker."""
    if handle.tag_name != "select":
        return False
    attrs = f"{handle.id} {handle.name} {handle.class_name}".lower()
    if any(term in attrs for term in ("username", "user", "login", "account", "userid")):
        return True
    if 2 <= len(handle.options) <= 20:
        for option in handle.options[:5]:
            text = option.text.lower()
            if "user" in text or "admin" in text:
                return True
            if 3 < len(text) < 20 and "select" not in text:
                return True
    return False


def is_likely_domain_dropdown(handle: ElementHandle) -> bool:
    """A select that looks like a domain/tenant picker."""
    if handle.tag_name != "select":
        return False
    if DOMAIN_TERM.search(handle.combined_attributes()):
        return True
    if 2 <= len(handle.options) <= 50:
        for option in handle.options[:10]:
            for content in (option.value.lower(), option.text.lower()):
                if any(marker in content for marker in (".local", ".com", ".org", ".net", "domain", "tenant")):
                    return True
                if 3 < len(content) < 50 and not any(p in content for p in ("select", "choose", "--")):
                    return True
    return False


def is_placeholder_option(text: str) -> bool:
    """Empty, "Select...", "Choose..." or "-- ... --" style options."""
    lowered = text.strip().lower()
    if not lowered:
        return True
    if lowered.startswith("-"):
        return True
    return any(word in lowered for word in ("select", "choose", "pick"))


# =============================================================================
# STRUCTURAL RULES
# =============================================================================

def _username_structure(handle: ElementHandle, attribute_scores: Dict[str, int]) -> int:
    score = 0
    if handle.tag_name == "select":
        score += 25
        if 1 <= len(handle.options) <= 20:
            score += 10
            for option in handle.options:
                content = f"{option.value} {option.text}".lower()
                if "user" in content or "admin" in content:
                    score += 5
                elif 3 <= len(option.text or option.value) <= 20 and "select" not in content:
                    score += 5
    elif handle.tag_name == "input":
        if handle.type == "email":
            score += 45
        elif handle.type == "text":
            score += 10
        elif handle.type == "password":
            score -= 50
    else:
        score -= 20

    if handle.form_input_index == 0:
        score += 15
    if handle.is_visible:
        score += 5
    return score


def _password_structure(handle: ElementHandle, attribute_scores: Dict[str, int]) -> int:
    score = 0
    if handle.type == "password":
        score += 50
    elif handle.type == "text":
        score += 5
    else:
        score -= 30

    if handle.form_input_index == 1:
        score += 10
    if handle.is_visible:
        score += 5

    identifying = ("id", "name", "placeholder", "aria-label")
    if handle.type != "password" and all(attribute_scores.get(a, 0) == 0 for a in identifying):
        score -= 20
    return score


def _domain_option_bonus(handle: ElementHandle) -> int:
    if len(handle.options) <= 1:
        return 0
    bonus = 0
    for option in handle.options:
        content = (option.text or option.value).lower()
        if ".local" in content:
            bonus += 40
        elif any(tld in content for tld in (".com", ".org", ".net")):
            bonus += 35
        elif re.search(r"\b(domain|tenant|org|company|corp)\b", content):
            bonus += 30
        elif 3 < len(content) < 50 and not any(p in content for p in ("select", "choose", "--", "option")):
            bonus += 20
    bonus = min(bonus, 60)
    if 2 <= len(handle.options) <= 20:
        bonus += 10
    return bonus


def _domain_structure(handle: ElementHandle, attribute_scores: Dict[str, int]) -> int:
    score = 0
    if handle.tag_name == "select":
        score += 15
        if "required" in handle.attributes:
            score += 10
    elif handle.tag_name == "input" and handle.type in ("text", ""):
        score += 5

    if handle.id.lower() == "domain" or handle.name.lower() == "domain":
        score += 50

    if not DOMAIN_TERM.search(handle.combined_attributes()):
        score -= 80

    if handle.form_input_index == 2:
        score += 10
    if handle.is_visible:
        score += 5

    if handle.tag_name == "select":
        score += _domain_option_bonus(handle)
    return score


def _submit_structure(handle: ElementHandle, attribute_scores: Dict[str, int]) -> int:
    score = 0
    if handle.type == "submit":
        score += 50
    elif handle.tag_name == "button":
        score += 20
    elif handle.tag_name == "input" and handle.type == "button":
        score += 15
    elif handle.tag_name == "a":
        score += 5

    if handle.is_last_form_button:
        score += 15
    if PRIMARY_CLASS.search(handle.class_name):
        score += 10

    score += 10 if handle.is_visible else -40

    if handle.tag_name == "a":
        href = handle.attr("href").lower()
        if "javascript" in href or href in ("#", ""):
            score += 10
        else:
            score -= 10

    if handle.role == "button":
        score += 10
    return score


StructuralRule = Callable[[ElementHandle, Dict[str, int]], int]

STRUCTURAL_RULES: Dict[FieldRole, StructuralRule] = {
    FieldRole.USERNAME: _username_structure,
    FieldRole.PASSWORD: _password_structure,
    FieldRole.DOMAIN: _domain_structure,
    FieldRole.SUBMIT_BUTTON: _submit_structure,
}


# =============================================================================
# SCORER
# =============================================================================

class ElementScorer:
    """
    Score and rank candidates for a role.

    Example:
        >>> scorer = ElementScorer()
        >>> best = scorer.best(cache.get("inputs"), FieldRole.PASSWORD)
    """

    MEMO_SIZE = 4096

    def __init__(self, settings: Optional[ScoringSettings] = None):
        self.settings = settings or ScoringSettings()
        self._memo: Dict[Tuple[str, FieldRole], int] = {}

    def term_score(self, value: str, role: FieldRole) -> int:
        """Fuzzy score of a value against the role's terms, memoized per scorer."""
        key = (value, role)
        cached = self._memo.get(key)
        if cached is None:
            if len(self._memo) >= self.MEMO_SIZE:
                self._memo.clear()
            cached = self._memo[key] = score_attribute(value, ROLE_PROFILES[role].terms, role)
        return cached

    def _weights(self, role: FieldRole) -> Tuple[Dict[str, float], Dict[str, float]]:
        if role == FieldRole.SUBMIT_BUTTON:
            return self.settings.submit_attribute_weights, self.settings.submit_token_weights
        return self.settings.input_attribute_weights, self.settings.token_weights

    def attribute_scores(self, handle: ElementHandle, role: FieldRole) -> Dict[str, int]:
        """Raw (unweighted) fuzzy score per weighted attribute."""
        weights, _ = self._weights(role)
        return {
            attribute: self.term_score(handle.get(attribute), role)
            for attribute in weights
        }

    def score(self, handle: ElementHandle, role: FieldRole) -> int:
        """
        Score one element for one role.

        Args:
            handle: Candidate element
            role: Role being scored

        Returns:
            Integer score; unbounded below, may exceed 100
        """
        profile = ROLE_PROFILES[role]
        weights, token_weights = self._weights(role)

        raw = self.attribute_scores(handle, role)
        total = sum(int(raw[attribute] * weight) for attribute, weight in weights.items())

        for attribute, weight in token_weights.items():
            for word in split_words(handle.get(attribute)):
                word_score = self.term_score(word, role)
                if word_score > self.settings.token_threshold:
                    total += int(word_score * weight)

        combined = handle.combined_attributes(include_text=profile.include_text)
        if combined:
            for rule in profile.patterns:
                if rule.pattern.search(combined):
                    total += rule.delta

        total += STRUCTURAL_RULES[role](handle, raw)
        return total

    def qualifies(self, handle: ElementHandle, role: FieldRole) -> bool:
        """Role-specific hard requirements, independent of score."""
        if role == FieldRole.DOMAIN:
            return bool(DOMAIN_TERM.search(handle.combined_attributes()))
        return True

    def rank(
        self,
        candidates: Sequence[ElementHandle],
        role: FieldRole,
        exclude: Iterable[Optional[ElementHandle]] = (),
        bonus: Optional[Callable[[ElementHandle], int]] = None,
    ) -> List[CandidateScore]:
        """
        Score and sort candidates, best first.

        Args:
            candidates: Elements to consider
            role: Role being scored
            exclude: Elements already claimed by other roles
            bonus: Optional extra points per candidate, applied to positive scores

        Returns:
            Retained candidates (positive score, visible, not excluded), stable-sorted
        """
        exclude = [e for e in exclude if e is not None]
        scored: List[CandidateScore] = []
        for handle in candidates:
            if not handle.is_visible or is_excluded(handle, exclude):
                continue
            if not self.qualifies(handle, role):
                continue
            value = self.score(handle, role)
            if value <= 0:
                continue
            if bonus is not None:
                value += bonus(handle)
            scored.append(CandidateScore(handle=handle, role=role, score=value))

        scored.sort(key=lambda c: c.score, reverse=True)
        if scored:
            top = scored[0]
            logger.debug(
                f"Best {role.value}: {top.handle.describe_short()} score={top.score} "
                f"({len(scored)} candidates)"
            )
        return scored

    def best(
        self,
        candidates: Sequence[ElementHandle],
        role: FieldRole,
        exclude: Iterable[Optional[ElementHandle]] = (),
        bonus: Optional[Callable[[ElementHandle], int]] = None,
    ) -> Optional[ElementHandle]:
        """Highest-ranked candidate, or None."""
        ranked = self.rank(candidates, role, exclude, bonus)
        return ranked[0].handle if ranked else None


# =============================================================================
# CONFIDENCE HELPERS
# =============================================================================

def has_strong_identifiers(handle: Optional[ElementHandle]) -> bool:
    """id, name or a test id is present."""
    if handle is None:
        return False
    return bool(handle.id or handle.name or handle.test_id)


def analyze_confidence(handle: Optional[ElementHandle], role: FieldRole) -> int:
    """Per-field confidence (0-100) from identifier quality, type and visibility."""
    if handle is None:
        return 0
    terms = ROLE_PROFILES[role].terms
    confidence = 0
    if score_attribute(handle.id, terms, role) > 80:
        confidence += 25
    if score_attribute(handle.name, terms, role) > 80:
        confidence += 20
    if score_attribute(handle.placeholder, terms, role) > 70:
        confidence += 15
    if score_attribute(handle.aria_label, terms, role) > 70:
        confidence += 15

    if role == FieldRole.USERNAME and handle.type == "email":
        confidence += 20
    elif role == FieldRole.PASSWORD and handle.type == "password":
        confidence += 30
    elif role == FieldRole.SUBMIT_BUTTON and handle.type == "submit":
        confidence += 25

    if handle.is_visible:
        confidence += 10
    return min(confidence, 100)


def selector_for(handle: Optional[ElementHandle]) -> str:
    """Best-effort CSS selector for logs and metrics."""
    if handle is None:
        return ""
    if handle.id:
        return f"#{handle.id}"
    if handle.name:
        return f"{handle.tag_name}[name='{handle.name}']"
    classes = handle.class_name.split()
    if classes:
        return f"{handle.tag_name}.{classes[0]}"
    return handle.tag_name
