"""Upload intake: required parts, tarball reading and metadata rules."""

from pantry.intake.presence import ArtifactIntake
from pantry.intake.tarball import ParsedTarball, build_tarball, parse_tarball
from pantry.intake.validation import validate_category, validate_metadata

__all__ = [
    "ArtifactIntake",
    "ParsedTarball",
    "build_tarball",
    "parse_tarball",
    "validate_category",
    "validate_metadata",
]
