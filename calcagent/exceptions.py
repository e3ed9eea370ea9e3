class CalcAgentError(Exception):
    """Base exception for calcagent errors."""

    pass


class ExtractionFailed(CalcAgentError):
    """Raised when the structured extraction call fails or returns invalid data."""

    pass


class PersistenceCorrupt(CalcAgentError):
    """Raised when a persisted state blob cannot be parsed or validated."""

    pass


class CalculationError(CalcAgentError, ValueError):
    """Raised when an arithmetic expression uses unsupported syntax."""

    pass
