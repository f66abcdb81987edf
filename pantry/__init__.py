"""Pantry: signed publish/retract intake for a cookbook registry.

v0.2.0, the intake gate in front of the registry store:
  - Ed25519 request signing via PyNaCl (knife-style X-Ops-* headers)
  - Typed authentication results (unknown identity / missing key / bad signature)
  - Owner + collaborator authorization for existing cookbooks
  - Aggregated tarball and metadata validation
  - Atomic SQLite commits serialized per cookbook
  - Best-effort post-commit notification, analytics and universe cache invalidation
"""

__version__ = "0.2.0"
__author__ = "Pantry maintainers"
__description__ = "Signed publish/retract intake for a cookbook registry"

from pantry.registry import Registry

__all__ = ["Registry", "__version__"]
