"""
Tests for custom exceptions.
"""

import pytest


class TestLoginAutofillError:
    """Test the base LoginAutofillError exception."""

    def test_create_base_error(self):
        """Test creating a LoginAutofillError."""
        from login_autofill.exceptions import LoginAutofillError
        error = LoginAutofillError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.details == {}

    def test_details_in_message(self):
        """Details are appended to the string form."""
        from login_autofill.exceptions import LoginAutofillError
        error = LoginAutofillError("Broken", {"field": "username"})
        assert str(error) == "Broken - Details: {'field': 'username'}"

    def test_base_error_is_exception(self):
        """Test that LoginAutofillError is an exception."""
        from login_autofill.exceptions import LoginAutofillError
        assert issubclass(LoginAutofillError, Exception)


class TestConfigurationError:
    """Test the ConfigurationError exception."""

    def test_create_config_error(self):
        """Test creating a ConfigurationError."""
        from login_autofill.exceptions import ConfigurationError
        error = ConfigurationError("Invalid profile file")
        assert str(error) == "Invalid profile file"

    def test_config_error_is_base_error(self):
        """Test that ConfigurationError is subclass of LoginAutofillError."""
        from login_autofill.exceptions import ConfigurationError, LoginAutofillError
        assert issubclass(ConfigurationError, LoginAutofillError)


class TestBrowserErrors:
    """Test the browser exceptions."""

    @pytest.mark.parametrize("name", ["BrowserLaunchError", "BrowserConnectionError", "NavigationError"])
    def test_browser_error_hierarchy(self, name):
        """All browser errors derive from BrowserError."""
        from login_autofill import exceptions
        assert issubclass(getattr(exceptions, name), exceptions.BrowserError)

    def test_navigation_error_url(self):
        """NavigationError keeps the URL."""
        from login_autofill.exceptions import NavigationError
        error = NavigationError("Timed out", url="https://portal.example.com")
        assert error.url == "https://portal.example.com"
        assert "portal.example.com" in str(error)


class TestNotFoundError:
    """Test the NotFoundError exception."""

    def test_create_not_found(self):
        """Role and timeout are kept."""
        from login_autofill.exceptions import NotFoundError
        error = NotFoundError("Password field did not appear", role="password", timeout_ms=5000)
        assert error.role == "password"
        assert error.timeout_ms == 5000
        assert "did not appear" in str(error)


class TestAmbiguousMatchError:
    """Test the AmbiguousMatchError exception."""

    def test_roles(self):
        """Both roles are recorded."""
        from login_autofill.exceptions import AmbiguousMatchError
        error = AmbiguousMatchError("input#login in two roles", roles=("username", "password"))
        assert error.roles == ("username", "password")
        assert error.details == {"roles": ["username", "password"]}


class TestInteractionError:
    """Test the InteractionError exception."""

    def test_action_and_reason(self):
        """The failed action and its cause are kept."""
        from login_autofill.exceptions import InteractionError
        error = InteractionError("Submit click failed", action="click", reason="intercepted")
        assert error.action == "click"
        assert error.reason == "intercepted"


class TestValidationFailedError:
    """Test the ValidationFailedError exception."""

    def test_expected_actual(self):
        """Expected and actual values are kept."""
        from login_autofill.exceptions import ValidationFailedError
        error = ValidationFailedError("Domain mismatch", expected="CORP ", actual="CORP")
        assert error.expected == "CORP "
        assert error.actual == "CORP"

    def test_catch_all_with_base(self):
        """Every library error can be caught with the base class."""
        from login_autofill.exceptions import LoginAutofillError, ValidationFailedError
        with pytest.raises(LoginAutofillError):
            raise ValidationFailedError("Domain mismatch", expected="a", actual="b")
