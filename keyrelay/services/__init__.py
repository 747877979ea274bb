"""Validation and failover services built on the provider registry."""

from keyrelay.services.orchestrator import (
    Attempt,
    FailoverOrchestrator,
    GenerateOptions,
    GenerateResult,
    GenerationStream,
)
from keyrelay.services.validation import KeyTestResult, ValidationService

__all__ = [
    "Attempt",
    "FailoverOrchestrator",
    "GenerateOptions",
    "GenerateResult",
    "GenerationStream",
    "KeyTestResult",
    "ValidationService",
]
