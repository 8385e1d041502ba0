"""
Site Config - Per-site selector profiles for known login pages.

Profiles are matched by case-insensitive substring of the URL, highest
priority first. A built-in generic profile (empty pattern, priority 0)
matches every URL and can be disabled in settings.

Example YAML (``sites.profiles_path``):

    profiles:
      - url_pattern: "portal.example.com/login"
        display_name: "Example portal"
        priority: 10
        username_selectors: ["#txtUser"]
        password_selectors: ["#txtPass"]
        domain_selectors: ["select#ddlDomain"]
        submit_selectors: ["#btnLogin"]
        additional_wait_ms: 500
"""

from pathlib import Path
from typing import List, Optional, Union
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from login_autofill.engine.models import FieldRole
from login_autofill.exceptions.base import ConfigurationError

logger = logging.getLogger(__name__)


class SiteProfile(BaseModel):
    """
    Selector profile for one login page.

    Attributes:
        url_pattern: Substring of the URL this profile applies to ("" matches all)
        priority: Higher priorities are checked first
        display_name: Human-readable name
        username_selectors: CSS selectors tried in order for the username field
        password_selectors: CSS selectors for the password field
        domain_selectors: CSS selectors for the domain field
        submit_selectors: CSS selectors for the submit control
        additional_wait_ms: Extra settle time before detection
        requires_javascript: Page renders its form client-side
        notes: Free text
    """
    url_pattern: str = ""
    priority: int = 0
    display_name: str = ""
    username_selectors: List[str] = Field(default_factory=list)
    password_selectors: List[str] = Field(default_factory=list)
    domain_selectors: List[str] = Field(default_factory=list)
    submit_selectors: List[str] = Field(default_factory=list)
    additional_wait_ms: int = Field(default=0, ge=0)
    requires_javascript: bool = False
    notes: str = ""

    def selectors_for(self, role: FieldRole) -> List[str]:
        return {
            FieldRole.USERNAME: self.username_selectors,
            FieldRole.PASSWORD: self.password_selectors,
            FieldRole.DOMAIN: self.domain_selectors,
            FieldRole.SUBMIT_BUTTON: self.submit_selectors,
        }[role]

    def matches(self, url: str) -> bool:
        return self.url_pattern.lower() in url.lower()

    @property
    def is_generic(self) -> bool:
        return not self.url_pattern


GENERIC_PROFILE = SiteProfile(
    url_pattern="",
    priority=0,
    display_name="Generic Login Page",
    username_selectors=[
        "input[name='username']",
        "input[id='username']",
        "input[name='user']",
        "input[id='user']",
        "input[name='login']",
        "input[id='login']",
        "input[type='email']",
        "input[name='email']",
        "input[id='email']",
        "input[type='text'][id*='user' i]",
        "input[type='text'][name*='user' i]",
        "input[type='text'][placeholder*='user' i]",
        "input[type='text'][id*='login' i]",
        "input[type='text'][name*='login' i]",
        "input[id*='email' i]",
        "input[name*='email' i]",
        "input[placeholder*='email' i]",
        "input[aria-label*='user' i]",
        "input[aria-label*='email' i]",
        "input[data-testid*='user' i]",
        "input[data-testid*='email' i]",
    ],
    password_selectors=[
        "input[type='password']",
        "input[name='password']",
        "input[id='password']",
        "input[name='pass']",
        "input[id='pass']",
        "input[name='pwd']",
        "input[id='pwd']",
    ],
    domain_selectors=[
        "input[name='domain']",
        "input[id='domain']",
        "select[name='domain']",
        "select[id='domain']",
        "input[name='tenant']",
        "input[id='tenant']",
        "select[name='tenant']",
        "select[id='tenant']",
        "input[name*='domain' i]",
        "input[id*='domain' i]",
        "select[name*='domain' i]",
        "select[id*='domain' i]",
        "select[name*='tenant' i]",
        "select[id*='tenant' i]",
        "select[aria-label*='domain' i]",
    ],
    submit_selectors=[
        "button[type='submit']",
        "input[type='submit']",
        "button[id*='login' i]",
        "button[name*='login' i]",
        "button[class*='login' i]",
        "button[id*='signin' i]",
        "button[class*='submit' i]",
        "input[type='button'][value*='log' i]",
        "input[type='button'][value*='sign' i]",
    ],
    notes="Built-in fallback profile",
)


class SiteConfigRegistry:
    """
    Lookup of site profiles by URL.

    Example:
        >>> registry = SiteConfigRegistry.from_yaml("sites.yaml")
        >>> profile = registry.lookup("https://portal.example.com/login")
    """

    def __init__(self, profiles: Optional[List[SiteProfile]] = None, include_generic: bool = True):
        self._profiles: List[SiteProfile] = list(profiles or [])
        if include_generic and not any(p.is_generic for p in self._profiles):
            self._profiles.append(GENERIC_PROFILE)

    @classmethod
    def from_yaml(cls, path: Union[str, Path], include_generic: bool = True) -> "SiteConfigRegistry":
        """
        Load profiles from a YAML file with a top-level ``profiles`` list.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        path = Path(path).expanduser()
        if not path.exists():
            raise ConfigurationError(f"Site profile file not found: {path}", {"path": str(path)})
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", {"path": str(path)})

        raw_profiles = data.get("profiles", []) if isinstance(data, dict) else data
        if not isinstance(raw_profiles, list):
            raise ConfigurationError(f"'profiles' in {path} must be a list", {"path": str(path)})
        try:
            profiles = [SiteProfile(**entry) for entry in raw_profiles]
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid site profile in {path}: {e}", {"path": str(path)})

        logger.info(f"Loaded {len(profiles)} site profiles from {path}")
        return cls(profiles, include_generic=include_generic)

    @property
    def profiles(self) -> List[SiteProfile]:
        return list(self._profiles)

    def lookup(self, url: str) -> Optional[SiteProfile]:
        """Highest-priority profile whose pattern occurs in the URL."""
        for profile in sorted(self._profiles, key=lambda p: p.priority, reverse=True):
            if profile.matches(url):
                return profile
        return None
