"""
Tests for domain fields and user-picker dropdowns.
"""

import pytest

from login_autofill.engine.domain_field import (
    DomainFieldHandler,
    choose_option,
    is_valid_domain_field,
    rank_option,
    select_username_option,
)
from login_autofill.engine.keystrokes import Typist, TypingMode
from login_autofill.engine.models import SelectOption
from login_autofill.exceptions import NotFoundError, ValidationFailedError

from .fakes import FakeClock, handle_of, select, text_input


@pytest.fixture
def handler():
    return DomainFieldHandler(Typist(TypingMode.DIRECT, post_entry_delay_ms=0, clock=FakeClock()))


# =============================================================================
# OPTION RANKING
# =============================================================================

class TestRankOption:
    """Tests for option ranking."""

    @pytest.mark.parametrize("option,domain,expected", [
        (SelectOption("CORP", "CORP"), "CORP", 100),
        (SelectOption("corp", "Corp"), "CORP", 90),
        (SelectOption("eu", "CORP (Europe)"), "corp", 70),
        (SelectOption("corpnet", "corpnet"), "corp", 50),
        (SelectOption("co", "co"), "corp", 30),
        (SelectOption("hr", "Human Resources"), "corp", 0),
        (SelectOption("", "-- Select domain --"), "select", 0),
    ])
    def test_rank(self, option, domain, expected):
        """Exact > case-insensitive > word > contains > contained."""
        assert rank_option(option, domain) == expected

    def test_blank_domain(self):
        """An empty domain ranks nothing."""
        assert rank_option(SelectOption("corp", "corp"), "  ") == 0

    def test_exact_beats_partial(self):
        """The exact option wins over earlier partial matches."""
        options = [SelectOption("", ""), SelectOption("masko.local", "masko.local"), SelectOption("picovina", "picovina")]
        assert choose_option(options, "picovina").value == "picovina"

    def test_first_wins_ties(self):
        """Equal ranks keep the first option."""
        options = [SelectOption("corp-a", "corp-a"), SelectOption("corp-b", "corp-b")]
        assert choose_option(options, "corp").value == "corp-a"

    def test_no_match(self):
        """Nothing ranked above zero yields None."""
        assert choose_option([SelectOption("hr", "hr")], "corp") is None


# =============================================================================
# VALIDITY
# =============================================================================

class TestIsValidDomainField:
    """Tests for domain field validation."""

    def test_valid(self):
        """A field named for the domain is valid."""
        assert is_valid_domain_field(handle_of(select(["a", "b"], id="domain")))

    def test_missing(self):
        """No field is never valid."""
        assert not is_valid_domain_field(None)

    def test_same_as_username(self):
        """A field already used for the username is rejected."""
        field = text_input(id="domain")
        assert not is_valid_domain_field(handle_of(field), username_field=handle_of(field))

    @pytest.mark.parametrize("attributes", [
        {"id": "tenant_id"},
        {"name": "txt_domain"},
        {"id": "domainName"},
        {"id": "ddlDomain"},
    ])
    def test_compound_identifiers(self, attributes, caplog):
        """Domain terms inside snake_case or camelCase ids are recognised."""
        assert is_valid_domain_field(handle_of(text_input(**attributes)))
        assert "skipping" not in caplog.text

    def test_camel_case_credential_term(self):
        """A camelCase id that also names the user is rejected."""
        assert not is_valid_domain_field(handle_of(text_input(id="userDomain")))

    def test_no_domain_term(self, caplog):
        """A field without a domain identifier is rejected."""
        assert not is_valid_domain_field(handle_of(select(["a", "b"], id="region")))
        assert "no domain identifier" in caplog.text

    def test_credential_term(self):
        """A field that also looks like a login field is rejected."""
        assert not is_valid_domain_field(handle_of(text_input(name="domain user")))


# =============================================================================
# DROPDOWNS
# =============================================================================

class TestDomainDropdown:
    """Tests for filling domain dropdowns."""

    @pytest.mark.asyncio
    async def test_selects_exact_option(self, handler):
        """The exact option is selected, not the first non-empty one."""
        field = select(["", "masko.local", "picovina"], id="domain")
        assert await handler.apply(handle_of(field), "picovina") == "picovina"
        assert field.selected == ["picovina"]

    @pytest.mark.asyncio
    async def test_uses_current_options(self, handler):
        """Options loaded after detection are considered."""
        field = select(["", "masko.local"], id="domain")
        handle = handle_of(field)
        field.options.append({"value": "picovina", "text": "Picovina"})
        assert await handler.apply(handle, "picovina") == "picovina"

    @pytest.mark.asyncio
    async def test_no_matching_option(self, handler):
        """No option above zero raises NotFoundError."""
        field = select(["", "masko.local"], id="domain")
        with pytest.raises(NotFoundError):
            await handler.apply(handle_of(field), "picovina")
        assert field.selected == []


# =============================================================================
# TEXT FIELDS
# =============================================================================

class TestDomainText:
    """Tests for typed domain fields and read-back."""

    @pytest.mark.asyncio
    async def test_typed_and_read_back(self, handler):
        """A field that keeps the value needs no re-fill."""
        field = text_input(id="domain")
        assert await handler.apply(handle_of(field), "CORP") == "CORP"
        assert field.fills == []

    @pytest.mark.asyncio
    async def test_one_refill_on_mismatch(self, handler):
        """A mismatch is re-filled directly once."""
        field = text_input(id="domain")
        typed = []

        def uppercase_once(el):
            if not typed:
                typed.append(el.value)
                el.value = el.value.upper()

        field.on_input = uppercase_once
        assert await handler.apply(handle_of(field), "corp") == "corp"
        assert field.fills == ["corp"]

    @pytest.mark.asyncio
    async def test_trailing_whitespace_is_failure(self, handler):
        """A field that trims input fails validation after one re-fill."""
        field = text_input(id="domain")
        field.normalize = str.strip

        with pytest.raises(ValidationFailedError) as exc_info:
            await handler.apply(handle_of(field), "CORP ")

        assert field.fills == ["CORP "]
        assert exc_info.value.expected == "CORP "
        assert exc_info.value.actual == "CORP"


# =============================================================================
# USERNAME DROPDOWNS
# =============================================================================

class TestSelectUsernameOption:
    """Tests for user-picker dropdowns."""

    @pytest.mark.asyncio
    async def test_by_value(self):
        """An exact value match wins."""
        field = select(["alice", "bob"], name="user")
        assert await select_username_option(handle_of(field), "bob") == "bob"

    @pytest.mark.asyncio
    async def test_by_label(self):
        """An exact label selects by label."""
        field = select([], name="user")
        field.options = [{"value": "1", "text": "alice"}, {"value": "2", "text": "bob"}]
        assert await select_username_option(handle_of(field), "bob") == "2"

    @pytest.mark.asyncio
    async def test_case_insensitive(self):
        """Case differences are tolerated."""
        field = select([], name="user")
        field.options = [{"value": "1", "text": "Alice"}]
        assert await select_username_option(handle_of(field), "ALICE") == "1"

    @pytest.mark.asyncio
    async def test_partial_skips_placeholder(self):
        """Partial matching never picks a placeholder."""
        field = select([], name="user")
        field.options = [
            {"value": "", "text": "Select alice's account"},
            {"value": "7", "text": "alice.smith"},
        ]
        assert await select_username_option(handle_of(field), "alice") == "7"

    @pytest.mark.asyncio
    async def test_no_match(self):
        """No matching user raises NotFoundError."""
        field = select(["alice", "bob"], name="user")
        with pytest.raises(NotFoundError):
            await select_username_option(handle_of(field), "carol")
