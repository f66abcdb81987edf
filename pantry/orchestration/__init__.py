"""Publish and retract flows."""

from pantry.orchestration.publish import PublishOrchestrator
from pantry.orchestration.retract import RetractionOrchestrator

__all__ = ["PublishOrchestrator", "RetractionOrchestrator"]
