"""Error taxonomy for segment generation."""


class SegmentationError(Exception):
    """Base class for failures that end a generation call without segments."""

    error_type = "SegmentationError"


class EmptyInputError(SegmentationError):
    error_type = "EmptyInputError"


class ConfigurationError(SegmentationError):
    error_type = "ConfigurationError"


class UpstreamError(SegmentationError):
    """The provider request failed. Not retried here."""

    error_type = "UpstreamError"


class EmptyResponseError(SegmentationError):
    error_type = "EmptyResponseError"


class MisunderstoodTaskError(SegmentationError):
    """The provider answered a different task (e.g. question/answer pairs)."""

    error_type = "MisunderstoodTaskError"


class GenerationFailedError(SegmentationError):
    error_type = "GenerationFailedError"
