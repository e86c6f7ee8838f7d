"""AI interpretation of lab results with multi-provider fallback."""

from app.interpretation.models import (
    AIProvider,
    InterpretationRequest,
    InterpretationResult,
    RiskLevel,
)
from app.interpretation.service import (
    InterpretationService,
    get_configured_providers,
    interpret_lab_result,
    provider_catalog,
)

__all__ = [
    "AIProvider",
    "InterpretationRequest",
    "InterpretationResult",
    "InterpretationService",
    "RiskLevel",
    "get_configured_providers",
    "interpret_lab_result",
    "provider_catalog",
]
