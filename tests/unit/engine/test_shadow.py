"""
Tests for shadow-root traversal.
"""

import pytest

from login_autofill.engine.models import FieldRole
from login_autofill.engine.shadow import ShadowTraversal

from .fakes import FakeElement, FakePage, FakeShadowRoot, button, handle_of, password_input, text_input


def login_widget(**kwargs) -> FakeElement:
    root = FakeShadowRoot([
        text_input(id="username"),
        password_input(id="password"),
        button("Sign in", type="submit"),
    ])
    return FakeElement("login-form", shadow=root, **kwargs)


class TestHostDiscovery:
    """Tests for finding shadow hosts."""

    @pytest.mark.parametrize("element,expected", [
        (FakeElement("my-widget"), True),
        (FakeElement("div", {"data-component": "login"}), True),
        (FakeElement("div"), False),
    ])
    def test_is_likely_host(self, element, expected):
        """Custom-element tags and marker attributes."""
        assert ShadowTraversal.is_likely_host(handle_of(element)) is expected

    @pytest.mark.asyncio
    async def test_hosts_capped(self):
        """No more than max_hosts hosts are returned."""
        page = FakePage([login_widget(), login_widget(), login_widget()])
        hosts = await ShadowTraversal(max_hosts=2).find_hosts(page)
        assert len(hosts) == 2

    @pytest.mark.asyncio
    async def test_hidden_hosts_skipped(self):
        """Invisible hosts are ignored."""
        page = FakePage([login_widget(visible=False)])
        assert await ShadowTraversal().find_hosts(page) == []

    @pytest.mark.asyncio
    async def test_marked_and_walked_host_deduplicated(self):
        """A host found twice is listed once."""
        page = FakePage([login_widget(attributes={"data-component": "login"})])
        hosts = await ShadowTraversal().find_hosts(page)
        assert len(hosts) == 1


class TestCollect:
    """Tests for collecting role candidates."""

    @pytest.mark.asyncio
    async def test_collects_from_open_root(self):
        """Elements inside the root are flagged in_shadow_root."""
        page = FakePage([login_widget()])
        found = await ShadowTraversal().collect(page, None, FieldRole.PASSWORD)
        assert [h.id for h in found] == ["password"]
        assert found[0].in_shadow_root

    @pytest.mark.asyncio
    async def test_script_fallback(self):
        """Without the native accessor the script fallback reaches the root."""
        page = FakePage([login_widget(native_shadow=False)])
        found = await ShadowTraversal().collect(page, None, FieldRole.SUBMIT_BUTTON)
        assert [h.text for h in found] == ["Sign in"]

    @pytest.mark.asyncio
    async def test_closed_root_not_found(self):
        """A closed root is reported as nothing found."""
        host = login_widget()
        host.shadow_closed = True
        page = FakePage([host])
        assert await ShadowTraversal().collect(page, None, FieldRole.PASSWORD) == []

    @pytest.mark.asyncio
    async def test_nested_roots_bounded_by_depth(self):
        """Nested roots are searched up to max_depth."""
        inner = FakeElement("inner-box", shadow=FakeShadowRoot([password_input(id="nested-pw")]))
        outer = FakeElement("outer-box", shadow=FakeShadowRoot([inner]))

        deep = await ShadowTraversal(max_depth=3).collect(FakePage([outer]), None, FieldRole.PASSWORD)
        shallow = await ShadowTraversal(max_depth=1).collect(FakePage([outer]), None, FieldRole.PASSWORD)

        assert [h.id for h in deep] == ["nested-pw"]
        assert shallow == []
