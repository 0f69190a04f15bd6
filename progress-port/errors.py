"""
Error taxonomy shared by the parser, upload pipeline, store and server.

All hard failures subclass ValueError so callers that only care about
"bad input" can keep catching ValueError.
"""


class ProgressPortError(ValueError):
    """Base class for recoverable, user-facing failures."""


class ParseError(ProgressPortError):
    """Payload is not a decodable spreadsheet, or has no header + data rows."""


class ValidationError(ProgressPortError):
    """Wrong file extension, missing metadata, or a malformed request value."""


class EditConflictError(ProgressPortError):
    """A second row edit was started, or a save was missing required fields."""


class FieldInferenceWarning(UserWarning):
    """No header resolved to rollNo or name; per-row fallbacks were used."""
