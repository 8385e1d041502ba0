"""
Tests for the DOM snapshot cache and fingerprint.
"""

import pytest
from unittest.mock import AsyncMock

from login_autofill.engine.dom_snapshot import DOMFingerprint, DOMSnapshotCache

from .fakes import FakeElement, FakePage, button, password_input, select, text_input


@pytest.fixture
def page():
    return FakePage([
        text_input(id="user"),
        password_input(id="pass"),
        FakeElement("input", {"type": "submit", "value": "Go"}),
        select(["a", "b"], id="domain"),
        button("Login", type="submit"),
        FakeElement("a", {"href": "#"}, text="Forgot?"),
    ])


class TestDOMSnapshotCache:
    """Tests for DOMSnapshotCache."""

    @pytest.mark.asyncio
    async def test_refresh_fills_categories(self, page):
        """Each category is queried once and described."""
        cache = DOMSnapshotCache()
        await cache.refresh(page)

        assert len(cache.get(DOMSnapshotCache.INPUTS)) == 3
        assert len(cache.get(DOMSnapshotCache.BUTTONS)) == 1
        assert len(cache.get(DOMSnapshotCache.SELECTS)) == 1
        assert len(cache.get(DOMSnapshotCache.LINKS)) == 1
        assert cache.is_for_url(page.url)
        assert cache.refresh_count == 1

    @pytest.mark.asyncio
    async def test_derived_categories(self, page):
        """form_elements and clickable_elements are derived from the base categories."""
        cache = DOMSnapshotCache()
        await cache.refresh(page)

        assert len(cache.get(DOMSnapshotCache.FORM_ELEMENTS)) == 5
        clickable = cache.get(DOMSnapshotCache.CLICKABLE_ELEMENTS)
        assert [h.tag_name for h in clickable] == ["button", "a", "input"]

    @pytest.mark.asyncio
    async def test_stale_elements_dropped(self, page):
        """Elements that fail to describe are skipped."""
        page.elements[0].describe = AsyncMock(side_effect=RuntimeError("stale element"))
        cache = DOMSnapshotCache()
        await cache.refresh(page)
        assert all(h.id != "user" for h in cache.get(DOMSnapshotCache.INPUTS))

    @pytest.mark.asyncio
    async def test_url_change_invalidates(self, page):
        """Navigating elsewhere drops the cache."""
        cache = DOMSnapshotCache()
        await cache.refresh(page)
        await page.goto("https://portal.example.com/other")
        await cache.ensure_current(page)
        assert not cache.is_populated
        assert cache.get(DOMSnapshotCache.INPUTS) == []

    @pytest.mark.asyncio
    async def test_refresh_if_stale(self, page):
        """Only a fingerprint change triggers a second refresh."""
        cache = DOMSnapshotCache()
        assert await cache.refresh_if_stale(page) is True
        assert await cache.refresh_if_stale(page) is False

        page.elements.append(text_input(id="otp"))
        assert await cache.refresh_if_stale(page) is True
        assert cache.refresh_count == 2

    def test_unknown_category(self):
        """Unknown categories read as empty."""
        assert DOMSnapshotCache().get("widgets") == []


class TestDOMFingerprint:
    """Tests for DOMFingerprint."""

    @pytest.mark.asyncio
    async def test_capture_and_compare(self, page):
        """Revealing an input changes the fingerprint."""
        page.elements[1].visible = False
        before = await DOMFingerprint.capture(page)
        page.elements[1].visible = True
        after = await DOMFingerprint.capture(page)

        assert before.password_count == 1
        assert after.changed_from(before)
        assert not after.changed_from(after)
        assert after.changed_from(None)

    @pytest.mark.asyncio
    async def test_capture_failure(self, page):
        """Evaluation errors yield None."""
        page.evaluate_error = RuntimeError("context destroyed")
        assert await DOMFingerprint.capture(page) is None
