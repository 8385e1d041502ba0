"""
Fuzzy Matcher - Score how well an attribute value matches a role term.

Combines several weak signals into one integer score:
- Levenshtein similarity
- Phonetic (Soundex) equality
- Per-role synonym tables
- Containment, word-boundary, prefix/suffix and acronym checks

An exact match scores EXACT_MATCH_SCORE; everything else is capped at
FUZZY_CAP so exact matches always outrank fuzzy ones.
"""

import re
from typing import Dict, Iterable, List, Tuple

from login_autofill.engine.models import FieldRole

EXACT_MATCH_SCORE = 100
FUZZY_CAP = 95

SIMILARITY_THRESHOLD = 0.8
SYNONYM_SIMILARITY_THRESHOLD = 0.7

_WORD_SPLIT = re.compile(r"[\s\-_]+")


SYNONYMS: Dict[FieldRole, Dict[str, Tuple[str, ...]]] = {
    FieldRole.USERNAME: {
        "username": ("user", "userid", "user_id", "user-id", "login", "loginid", "login_id",
                     "email", "e-mail", "mail", "account", "uid"),
        "user": ("username", "userid", "user_id", "user-id", "login", "account", "uid"),
        "email": ("e-mail", "mail", "email-address", "email_address", "emailaddress", "login", "username"),
        "login": ("username", "user", "userid", "loginid", "account", "signin"),
    },
    FieldRole.PASSWORD: {
        "password": ("pass", "pwd", "passwd", "passphrase", "pass-word", "pass_word", "pin", "secret"),
        "pass": ("password", "pwd", "passwd", "passphrase", "pin"),
        "pwd": ("password", "pass", "passwd", "passphrase"),
    },
    FieldRole.DOMAIN: {
        "domain": ("tenant", "organization", "org", "company", "corp", "realm", "authority"),
        "tenant": ("domain", "organization", "org", "company", "realm"),
        "organization": ("org", "domain", "tenant", "company", "corp"),
    },
    FieldRole.SUBMIT_BUTTON: {
        "login": ("log-in", "log_in", "signin", "sign-in", "sign_in", "submit", "enter", "go", "connect"),
        "submit": ("login", "signin", "enter", "go", "send", "continue", "proceed"),
        "signin": ("sign-in", "sign_in", "login", "log-in", "enter"),
    },
}

_SOUNDEX_CODES = {
    **dict.fromkeys("bfpv", "1"),
    **dict.fromkeys("cgjkqsxz", "2"),
    **dict.fromkeys("dt", "3"),
    "l": "4",
    **dict.fromkeys("mn", "5"),
    "r": "6",
}


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1] (1 - distance / longest length)."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest


def soundex(word: str) -> str:
    """
    Simplified Soundex code.

    Letters outside the code table (vowels, h, w, y) separate runs, so a
    repeated code after one of them is emitted again.
    """
    letters = [c for c in word.lower() if c.isalpha()]
    if not letters:
        return "0000"

    result = letters[0].upper()
    previous = _SOUNDEX_CODES.get(letters[0], "")
    for char in letters[1:]:
        code = _SOUNDEX_CODES.get(char, "")
        if code and code != previous:
            result += code
            if len(result) == 4:
                break
        previous = code
    return result.ljust(4, "0")


def is_acronym(full: str, acronym: str) -> bool:
    """True when the initials of the words in ``full`` spell ``acronym``."""
    words = [w for w in _WORD_SPLIT.split(full) if w]
    if len(words) < 2 or len(words) != len(acronym):
        return False
    return "".join(w[0] for w in words).lower() == acronym.lower()


def _synonym_bonus(target: str, candidate: str, role: FieldRole) -> int:
    variations = SYNONYMS.get(role, {}).get(target)
    if not variations:
        return 0
    bonus = 0
    for variation in variations:
        if candidate == variation:
            bonus += 40
        elif variation in candidate:
            bonus += 20
        elif similarity(candidate, variation) >= SYNONYM_SIMILARITY_THRESHOLD:
            bonus += 15
    return bonus


def fuzzy_score(target: str, candidate: str, role: FieldRole) -> int:
    """
    Score how well ``candidate`` (an attribute value) matches ``target`` (a role term).

    Args:
        target: Term from the role's vocabulary
        candidate: Attribute value read from the element
        role: Role whose synonym table applies

    Returns:
        EXACT_MATCH_SCORE for an exact match, otherwise 0..FUZZY_CAP
    """
    if not target or not candidate:
        return 0

    target = target.lower().strip()
    candidate = candidate.lower().strip()
    if not target or not candidate:
        return 0
    if target == candidate:
        return EXACT_MATCH_SCORE

    score = 0

    sim = similarity(target, candidate)
    if sim >= SIMILARITY_THRESHOLD:
        score += int(sim * 50)

    if soundex(target) == soundex(candidate):
        score += 25

    score += _synonym_bonus(target, candidate, role)

    if target in candidate:
        score += 30
    if candidate in target:
        score += 25

    if re.search(rf"\b{re.escape(target)}\b", candidate):
        score += 35

    if candidate.startswith(target) or candidate.endswith(target):
        score += 20
    if target.startswith(candidate) or target.endswith(candidate):
        score += 15

    if is_acronym(target, candidate):
        score += 10

    return min(score, FUZZY_CAP)


def score_attribute(value: str, terms: Iterable[str], role: FieldRole) -> int:
    """Best fuzzy score of ``value`` against any of ``terms`` (0 for an empty value)."""
    if not value:
        return 0
    return max((fuzzy_score(term, value, role) for term in terms), default=0)


def split_words(value: str) -> List[str]:
    """Split an attribute value into word tokens on whitespace, '-' and '_'."""
    return [w for w in _WORD_SPLIT.split(value) if w]


def target_terms(role: FieldRole) -> List[str]:
    """Every key and variation of the role's synonym table, de-duplicated."""
    seen: List[str] = []
    for key, variations in SYNONYMS.get(role, {}).items():
        for term in (key, *variations):
            if term not in seen:
                seen.append(term)
    return seen
