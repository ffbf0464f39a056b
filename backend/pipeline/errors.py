"""Precondition failures raised by the analysis pipeline."""


class AnalysisError(ValueError):
    """Base class: the uploaded table cannot support an analysis run."""


class DataFormatError(AnalysisError):
    """Malformed or empty input table, or no usable billing records."""


class InsufficientDataError(AnalysisError):
    """Too few aggregated weeks for a meaningful train/test split."""
