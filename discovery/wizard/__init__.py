"""
Discovery wizard: session model, stage calculators and persistence.

Components:
- DiscoveryWizard: six-stage linear state machine over a DiscoverySession
- reduce / SessionAction: tagged commands and the transition function
- SessionStore: JSON key-value persistence keyed by session id
- AgreementDocument: paginated agreement export
"""

from .actions import SessionAction, reduce
from .catalog import DEFAULT_CATALOG, WizardCatalog
from .engine import DiscoveryWizard, new_session
from .export import AgreementDocument
from .models import (
    CustomerImpact,
    Difficulty,
    DiscoverySession,
    WizardStep,
)
from .store import SessionStore

__all__ = [
    "SessionAction",
    "reduce",
    "DEFAULT_CATALOG",
    "WizardCatalog",
    "DiscoveryWizard",
    "new_session",
    "AgreementDocument",
    "CustomerImpact",
    "Difficulty",
    "DiscoverySession",
    "WizardStep",
    "SessionStore",
]
