"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class InputFormatError(PipelineError):
    """Raised when a top-level input collection is structurally invalid."""

    error_code = "INPUT_FORMAT"


class StageError(PipelineError):
    """Raised for stage failures that should halt in strict mode."""

    error_code = "STAGE_ERROR"


class GeometryError(PipelineError):
    """Raised when an asset geometry cannot be projected."""

    error_code = "GEOMETRY_ERROR"


class UnsupportedGeometryError(GeometryError):
    error_code = "UNSUPPORTED_GEOMETRY"

    def __init__(self, geometry_type: object) -> None:
        super().__init__(f"Unsupported geometry type: {geometry_type}")
        self.geometry_type = geometry_type


class GeocodeUnavailableError(PipelineError):
    """Raised when the reverse geocoder cannot produce an answer."""

    error_code = "GEOCODE_UNAVAILABLE"
