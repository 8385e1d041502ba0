"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from login_autofill.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.entry.typing_mode)
    'chunked'
"""

from typing import Dict, Literal, Optional
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserSettings(BaseModel):
    """
    Browser automation settings.

    Attributes:
        headless: Run browser in headless mode
        browser_type: Playwright browser type
        channel: Optional browser channel (chrome, msedge)
        timeout_ms: Default timeout for navigation
        viewport_width: Browser viewport width in pixels
        viewport_height: Browser viewport height in pixels
        slow_mo: Slow down operations by this amount (ms) - useful for debugging
    """
    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    channel: Optional[str] = None
    timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)
    slow_mo: int = Field(default=0, ge=0, le=5000)


class DetectionSettings(BaseModel):
    """
    Multi-strategy detector settings.

    Attributes:
        fast_path_enabled: Try the cheap type-based scan before any strategy
        progressive_fallback: Return a username-only form when no strategy finds a password
        page_ready_timeout_ms: Max wait for document.readyState == 'complete'
        quick_input_check_ms: Short poll for inputs after the page is ready
        max_additional_wait_ms: Cap for a site profile's additional wait
        settle_delay_ms: Delay applied when no site profile asks for more
        poll_interval_ms: Interval used by page-ready polling
        max_shadow_hosts: Max shadow hosts inspected per traversal
        max_shadow_depth: Max nesting of shadow roots followed
        diagnostic_inputs: Number of inputs listed in the failure dump
        diagnostic_buttons: Number of buttons listed in the failure dump
    """
    fast_path_enabled: bool = True
    progressive_fallback: bool = True
    page_ready_timeout_ms: int = Field(default=3000, ge=0, le=60000)
    quick_input_check_ms: int = Field(default=1000, ge=0, le=10000)
    max_additional_wait_ms: int = Field(default=2000, ge=0, le=30000)
    settle_delay_ms: int = Field(default=100, ge=0, le=5000)
    poll_interval_ms: int = Field(default=100, ge=10, le=2000)
    max_shadow_hosts: int = Field(default=10, ge=1, le=100)
    max_shadow_depth: int = Field(default=3, ge=1, le=10)
    diagnostic_inputs: int = Field(default=10, ge=0, le=100)
    diagnostic_buttons: int = Field(default=5, ge=0, le=100)


class ScoringSettings(BaseModel):
    """
    Element scorer weights.

    Only the relative order of signals is a contract (exact > fuzzy >
    structural > positional); the magnitudes are tunable here.

    Attributes:
        input_attribute_weights: Weight per attribute for username/password/domain
        submit_attribute_weights: Weight per attribute for the submit role
        token_weights: Weight per attribute for word-token matches
        submit_token_weights: Token weights for the submit role
        token_threshold: Minimum token score that earns a token bonus
        shadow_bonus: Fixed bonus for matches found inside shadow roots
    """
    input_attribute_weights: Dict[str, float] = Field(default_factory=lambda: {
        "id": 0.9,
        "name": 0.85,
        "data-testid": 0.8,
        "aria-label": 0.7,
        "placeholder": 0.6,
        "class": 0.4,
    })
    submit_attribute_weights: Dict[str, float] = Field(default_factory=lambda: {
        "id": 0.8,
        "name": 0.8,
        "value": 0.9,
        "text": 0.95,
        "aria-label": 0.7,
        "data-testid": 0.8,
        "class": 0.4,
    })
    token_weights: Dict[str, float] = Field(default_factory=lambda: {
        "placeholder": 0.3,
        "aria-label": 0.35,
    })
    submit_token_weights: Dict[str, float] = Field(default_factory=lambda: {
        "text": 0.4,
        "value": 0.35,
    })
    token_threshold: int = Field(default=50, ge=0, le=100)
    shadow_bonus: int = Field(default=500, ge=0)


class EntrySettings(BaseModel):
    """
    Credential entry settings.

    Attributes:
        typing_mode: How text is sent to fields
        min_delay_ms: Lower bound of the random inter-key/inter-chunk delay
        max_delay_ms: Upper bound of the random inter-key/inter-chunk delay
        post_entry_delay_ms: Pause after each field is filled
        submission_delay_ms: Pause before submitting
        script_click_fallback: Retry a failed native click as a script click
        step_timeout_ms: Per-attempt timeout of a step; must outlast every field wait
        step_retries: Extra attempts for a step that failed transiently
        retry_delay_ms: Pause between step attempts
        field_wait_timeout_ms: Max wait for the password field to appear
        submit_wait_timeout_ms: Max wait for a submit control to appear
        domain_wait_timeout_ms: Max wait for a domain field to appear
        polling_interval_ms: Interval between DOM checks while waiting
        stability_window_ms: Time an element must stay unchanged to be stable
    """
    typing_mode: Literal["direct", "chunked", "per_character"] = "chunked"
    min_delay_ms: int = Field(default=10, ge=0, le=5000)
    max_delay_ms: int = Field(default=30, ge=0, le=5000)
    post_entry_delay_ms: int = Field(default=50, ge=0, le=5000)
    submission_delay_ms: int = Field(default=500, ge=0, le=10000)
    script_click_fallback: bool = True
    step_timeout_ms: int = Field(default=15000, ge=100, le=120000)
    step_retries: int = Field(default=1, ge=0, le=5)
    retry_delay_ms: int = Field(default=250, ge=0, le=10000)
    field_wait_timeout_ms: int = Field(default=5000, ge=100, le=60000)
    submit_wait_timeout_ms: int = Field(default=3000, ge=0, le=60000)
    domain_wait_timeout_ms: int = Field(default=2000, ge=0, le=60000)
    polling_interval_ms: int = Field(default=150, ge=10, le=2000)
    stability_window_ms: int = Field(default=300, ge=0, le=5000)

    @model_validator(mode="after")
    def _check_timing(self) -> "EntrySettings":
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        if self.polling_interval_ms >= self.field_wait_timeout_ms:
            raise ValueError("polling_interval_ms must be below field_wait_timeout_ms")
        longest_wait = max(self.field_wait_timeout_ms, self.submit_wait_timeout_ms, self.domain_wait_timeout_ms)
        if self.step_timeout_ms <= longest_wait + self.stability_window_ms:
            raise ValueError(
                "step_timeout_ms must exceed the longest field wait plus stability_window_ms"
            )
        return self


class MetricsSettings(BaseModel):
    """
    Detection metrics settings.

    Attributes:
        enabled: Record attempts and adapt the strategy order
        cache_path: JSON file the metrics persist to
        max_attempts: Number of recent attempts kept
        min_samples: Attempts needed on a host before reordering
    """
    enabled: bool = True
    cache_path: str = "~/.login-autofill/detection_metrics.json"
    max_attempts: int = Field(default=1000, ge=10, le=100000)
    min_samples: int = Field(default=1, ge=1, le=1000)


class SiteSettings(BaseModel):
    """
    Site profile settings.

    Attributes:
        profiles_path: YAML file with per-site selector profiles
        use_generic_profile: Fall back to the built-in generic profile
    """
    profiles_path: Optional[str] = None
    use_generic_profile: bool = True


class DiagnosticsSettings(BaseModel):
    """
    Failure diagnostics settings.

    Attributes:
        screenshot_on_failure: Capture a screenshot when an entry step fails
        output_dir: Directory screenshots are written to
    """
    screenshot_on_failure: bool = True
    output_dir: str = "./output/screenshots"


class LoggingSettings(BaseModel):
    """
    Logging configuration.

    Attributes:
        level: Log level
        file: Log file path (None for console only)
        json_format: Use JSON format for the log file
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.

    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with LOGIN_AUTOFILL__)
    3. Config file (YAML)
    4. Default values

    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(entry=EntrySettings(typing_mode="direct"))
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGIN_AUTOFILL__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    entry: EntrySettings = Field(default_factory=EntrySettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    sites: SiteSettings = Field(default_factory=SiteSettings)
    diagnostics: DiagnosticsSettings = Field(default_factory=DiagnosticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = False

    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.

        Args:
            overrides: Dictionary of values to override

        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()

        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base

        merged = deep_merge(current, overrides)
        return Settings(**merged)
