"""
Login Autofill - Detect web login forms and enter credentials into them.

This package classifies the username, password, domain and submit
controls of an unknown login page and drives the entry sequence,
including forms that reveal their fields progressively.

Example:
    >>> from login_autofill import LoginDetector, CredentialEntry, Credentials
    >>> form = await LoginDetector().detect(page)
    >>> result = await CredentialEntry(page).enter(form, Credentials("alice", "s3cret"))
"""

__version__ = "0.1.0"
__author__ = "Suhaib Bin Younis"

# Public API exports
from login_autofill.config.settings import Settings
from login_autofill.engine.credential_entry import CredentialEntry
from login_autofill.engine.detector import LoginDetector
from login_autofill.engine.models import Credentials, DetectedForm, EntryResult

__all__ = [
    "CredentialEntry",
    "Credentials",
    "DetectedForm",
    "EntryResult",
    "LoginDetector",
    "Settings",
    "__version__",
]
