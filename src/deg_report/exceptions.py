"""Exception types raised by the DE report pipeline."""


class DEGReportError(Exception):
    """Base class for all report errors."""


class ConfigError(DEGReportError, ValueError):
    """Invalid or incomplete report configuration."""


class DataMismatchError(DEGReportError, ValueError):
    """Count matrix columns and metadata rows do not describe the same samples."""


class DesignError(DEGReportError, ValueError):
    """Condition or covariate columns cannot be turned into a model design."""


class ModelFitError(DEGReportError, RuntimeError):
    """The statistical engine failed to fit the model or compute statistics."""
