"""HTTP-shaped controller for cookbook uploads and deletions."""

from pantry.api.uploads import ApiResponse, CookbookUploadsController

__all__ = ["ApiResponse", "CookbookUploadsController"]
