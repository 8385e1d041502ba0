"""
Tests for the element scorer and its helpers.
"""

import pytest

from login_autofill.config import ScoringSettings
from login_autofill.engine.fuzzy import score_attribute
from login_autofill.engine.models import FieldRole
from login_autofill.engine.scoring import (
    ROLE_PROFILES,
    ElementScorer,
    analyze_confidence,
    are_same_element,
    has_strong_identifiers,
    is_excluded,
    is_likely_domain_dropdown,
    is_likely_username_dropdown,
    is_placeholder_option,
    selector_for,
)

from .fakes import FakeElement, button, handle_of, password_input, select, text_input


@pytest.fixture
def scorer():
    return ElementScorer(ScoringSettings())


# =============================================================================
# SCORE ORDERING
# =============================================================================

class TestScoreOrdering:
    """Tests for the relative order of scores."""

    def test_exact_beats_fuzzy(self, scorer):
        """id="password" outscores id="password-field"."""
        exact = handle_of(password_input(id="password"))
        fuzzy = handle_of(password_input(id="password-field"))
        assert scorer.score(exact, FieldRole.PASSWORD) > scorer.score(fuzzy, FieldRole.PASSWORD)

    def test_type_password_never_decreases_score(self, scorer):
        """Adding type="password" is a true positive signal."""
        plain = handle_of(text_input(id="pwd"))
        typed = handle_of(password_input(id="pwd"))
        assert scorer.score(typed, FieldRole.PASSWORD) >= scorer.score(plain, FieldRole.PASSWORD)

    def test_email_input_preferred_for_username(self, scorer):
        """An email field beats a search box."""
        search = handle_of(text_input(id="search", placeholder="Search"))
        email = handle_of(FakeElement("input", {"type": "email", "name": "email"}))
        assert scorer.best([search, email], FieldRole.USERNAME) is email

    def test_password_penalized_for_username(self, scorer):
        """A password input is not a username candidate."""
        password = handle_of(password_input(id="password"))
        assert scorer.score(password, FieldRole.USERNAME) <= 0

    def test_login_button_beats_cancel(self, scorer):
        """Submit scoring reads the visible text."""
        cancel = handle_of(button("Cancel", type="button"))
        login = handle_of(button("Sign in", type="submit"))
        assert scorer.best([cancel, login], FieldRole.SUBMIT_BUTTON) is login

    def test_ties_keep_first_seen_order(self, scorer):
        """Equal scores are stable-sorted."""
        first = handle_of(password_input())
        second = handle_of(password_input())
        ranked = scorer.rank([first, second], FieldRole.PASSWORD)
        assert [c.handle for c in ranked] == [first, second]

    def test_bonus_applied_after_scoring(self, scorer):
        """The bonus lifts an otherwise weaker candidate."""
        strong = handle_of(password_input(id="password"))
        weak = handle_of(password_input(id="field2"))
        best = scorer.best([strong, weak], FieldRole.PASSWORD, bonus=lambda h: 500 if h is weak else 0)
        assert best is weak


# =============================================================================
# EXCLUSION AND QUALIFICATION
# =============================================================================

class TestExclusion:
    """Tests for exclusion and hard requirements."""

    def test_excluded_element_never_returned(self, scorer):
        """Excluding the only candidate leaves nothing."""
        only = handle_of(password_input(id="password"))
        assert scorer.best([only], FieldRole.PASSWORD, exclude=[only]) is None

    def test_exclusion_by_identity_of_id(self, scorer):
        """A re-captured handle with the same id is excluded too."""
        element = password_input(id="password")
        first, second = handle_of(element), handle_of(password_input(id="password"))
        assert is_excluded(second, [first])

    def test_hidden_elements_skipped(self, scorer):
        """Invisible candidates are not ranked."""
        hidden = password_input(id="password")
        hidden.visible = False
        assert scorer.rank([handle_of(hidden)], FieldRole.PASSWORD) == []

    def test_domain_requires_domain_term(self, scorer):
        """A select full of domain-looking options still needs a domain identifier."""
        picker = handle_of(select(["", "corp.local", "lab.local"], id="ddlChoice"))
        assert scorer.best([picker], FieldRole.DOMAIN) is None

    def test_domain_with_term_qualifies(self, scorer):
        """A select named domain is a domain field."""
        picker = handle_of(select(["", "corp.local", "lab.local"], id="domain"))
        assert scorer.best([picker], FieldRole.DOMAIN) is picker

    @pytest.mark.parametrize("attributes", [
        {"id": "tenant_id"},
        {"name": "txt_domain"},
        {"id": "domainName"},
        {"id": "ddlDomain"},
    ])
    def test_compound_domain_identifiers_qualify(self, scorer, attributes):
        """snake_case and camelCase ids carrying a domain term are domain fields."""
        field = handle_of(text_input(**attributes))
        assert scorer.best([field], FieldRole.DOMAIN) is field

    def test_domain_dropdown_with_prefixed_id(self, scorer):
        """A select with a Hungarian-style prefixed id is a domain picker."""
        picker = handle_of(select(["", "corp.local", "lab.local"], id="ddlDomain"))
        assert scorer.best([picker], FieldRole.DOMAIN) is picker

    def test_camel_case_search_penalized(self, scorer):
        """A camelCase search id gets the same penalty as a spaced one."""
        camel = handle_of(text_input(id="siteSearch"))
        flat = handle_of(text_input(id="sitesearch"))
        assert scorer.score(camel, FieldRole.USERNAME) == scorer.score(flat, FieldRole.USERNAME) - 20


class TestSameElement:
    """Tests for are_same_element."""

    def test_same_id_same_tag(self):
        """Same tag and id is the same element."""
        assert are_same_element(handle_of(text_input(id="u")), handle_of(text_input(id="u")))

    def test_different_tags(self):
        """Different tags never match."""
        assert not are_same_element(handle_of(text_input(id="u")), handle_of(select([], id="u")))

    def test_conflicting_ids_override_names(self):
        """Different ids win over equal names."""
        a = handle_of(text_input(id="a", name="user"))
        b = handle_of(text_input(id="b", name="user"))
        assert not are_same_element(a, b)

    def test_none(self):
        """None is never the same element."""
        assert not are_same_element(None, handle_of(text_input(id="u")))


# =============================================================================
# DROPDOWNS AND HELPERS
# =============================================================================

class TestDropdownHeuristics:
    """Tests for dropdown classification."""

    def test_domain_dropdown(self):
        """Options ending in .local mark a domain picker."""
        assert is_likely_domain_dropdown(handle_of(select(["", "masko.local", "picovina"], id="ddl1")))

    def test_username_dropdown(self):
        """A select named user is a user picker."""
        assert is_likely_username_dropdown(handle_of(select(["alice", "bob"], name="user")))

    def test_input_is_not_a_dropdown(self):
        """Only selects qualify."""
        assert not is_likely_domain_dropdown(handle_of(text_input(id="domain")))

    @pytest.mark.parametrize("text,expected", [
        ("", True),
        ("-- Select --", True),
        ("Choose a domain", True),
        ("masko.local", False),
    ])
    def test_placeholder_option(self, text, expected):
        """Placeholder options are recognized."""
        assert is_placeholder_option(text) is expected


class TestConfidenceHelpers:
    """Tests for confidence and selector helpers."""

    def test_analyze_confidence(self):
        """Exact id + password type + visible."""
        handle = handle_of(password_input(id="password"))
        assert analyze_confidence(handle, FieldRole.PASSWORD) == 65

    def test_analyze_confidence_missing(self):
        """A missing field has no confidence."""
        assert analyze_confidence(None, FieldRole.PASSWORD) == 0

    def test_strong_identifiers(self):
        """id, name or test id."""
        assert has_strong_identifiers(handle_of(text_input(name="login")))
        assert not has_strong_identifiers(handle_of(text_input()))

    def test_selector_for(self):
        """id first, then name, then class."""
        assert selector_for(handle_of(text_input(id="user"))) == "#user"
        assert selector_for(handle_of(text_input(name="user"))) == "input[name='user']"
        assert selector_for(handle_of(FakeElement("button", {"class": "btn primary"}))) == "button.btn"


class TestTermScoreMemo:
    """Tests for the scorer's term-score memo."""

    def test_memo_is_per_scorer(self):
        """Scores cached by one scorer are not visible to another."""
        first, second = ElementScorer(), ElementScorer()
        first.score(handle_of(password_input(id="password")), FieldRole.PASSWORD)
        assert first._memo
        assert not second._memo

    def test_memoized_value_matches_direct_score(self, scorer):
        """The memo returns what the fuzzy matcher computes."""
        expected = score_attribute("pwd", ROLE_PROFILES[FieldRole.PASSWORD].terms, FieldRole.PASSWORD)
        assert scorer.term_score("pwd", FieldRole.PASSWORD) == expected
        assert scorer.term_score("pwd", FieldRole.PASSWORD) == expected
