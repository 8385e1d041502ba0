"""
Engine module - Login form classification and credential entry.

Components:
- fuzzy / scoring: attribute matching and per-role element scoring
- dom_snapshot / shadow: element collection, including open shadow roots
- strategies / detector: multi-strategy detection with adaptive ordering
- keystrokes / domain_field / credential_entry: the entry state machine
"""

from login_autofill.engine.models import (
    FieldRole,
    DetectionMethod,
    EntryMode,
    EntryState,
    ElementHandle,
    DetectedForm,
    DetectionAttempt,
    StepResult,
    Credentials,
    EntryResult,
)
from login_autofill.engine.scoring import ElementScorer
from login_autofill.engine.dom_snapshot import DOMSnapshotCache, DOMFingerprint
from login_autofill.engine.shadow import ShadowTraversal
from login_autofill.engine.site_config import SiteProfile, SiteConfigRegistry
from login_autofill.engine.detection_metrics import DetectionMetrics, get_metrics
from login_autofill.engine.detector import LoginDetector
from login_autofill.engine.keystrokes import Typist, TypingMode
from login_autofill.engine.domain_field import DomainFieldHandler
from login_autofill.engine.credential_entry import CredentialEntry

__all__ = [
    # Models
    "FieldRole",
    "DetectionMethod",
    "EntryMode",
    "EntryState",
    "ElementHandle",
    "DetectedForm",
    "DetectionAttempt",
    "StepResult",
    "Credentials",
    "EntryResult",
    # Detection
    "ElementScorer",
    "DOMSnapshotCache",
    "DOMFingerprint",
    "ShadowTraversal",
    "SiteProfile",
    "SiteConfigRegistry",
    "DetectionMetrics",
    "get_metrics",
    "LoginDetector",
    # Entry
    "Typist",
    "TypingMode",
    "DomainFieldHandler",
    "CredentialEntry",
]
