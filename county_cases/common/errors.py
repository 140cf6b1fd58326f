"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised when a pipeline step cannot complete."""

    error_code = "STAGE_ERROR"


class RecordParseError(StageError):
    """Raised when a row that passed the region filter carries corrupt values."""

    error_code = "DATA_ERROR"


class ReferenceUnavailableError(StageError):
    """Raised when no reference set has ever been loaded."""

    error_code = "REFERENCE_UNAVAILABLE"
