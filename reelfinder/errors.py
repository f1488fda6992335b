from __future__ import annotations


class DecodeError(RuntimeError):
    """Source media could not be opened, probed, seeked or decoded."""


class SceneExtractionError(RuntimeError):
    """Thumbnail or clip extraction failed for a single selected scene."""
