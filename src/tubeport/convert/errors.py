"""Error taxonomy for the conversion pipeline.

Fatal errors abort the whole run; isolated errors are recorded on a single
track and the run continues.
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for every error raised by the conversion pipeline."""


# -- fatal -----------------------------------------------------------------


class InvalidReferenceError(ConversionError):
    """The playlist reference does not contain a recognisable playlist id."""


class AuthError(ConversionError):
    """A credential exchange was rejected or a required token is missing."""


class PlaylistNotFoundError(ConversionError):
    """The source platform reports the playlist as absent."""


class SourceFetchError(ConversionError):
    """Any other failure while reading the source playlist."""


class PlaylistCreateError(ConversionError):
    """The target platform refused to create the destination playlist."""


# -- isolated (per track) --------------------------------------------------


class SearchError(ConversionError):
    """The target search request was rejected."""


class AddItemError(ConversionError):
    """The target platform refused to add a video to the playlist."""


class TargetAPIError(ConversionError):
    """A non-pipeline target platform call failed."""
