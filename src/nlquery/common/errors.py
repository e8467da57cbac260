"""Exception hierarchy for configuration, conversion, and search failures."""

from __future__ import annotations


class NLQueryError(Exception):
    """Base class for all nlquery errors.

    ``phase`` names the stage of the query cycle that failed so the
    presentation layer can report it without inspecting the type.
    """

    phase: str = "query"

    def __init__(self, message: str, *, phase: str | None = None) -> None:
        super().__init__(message)
        if phase is not None:
            self.phase = phase

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__


class ConfigurationError(NLQueryError):
    """A required setting is missing or invalid. Fatal at startup."""

    phase = "configuration"


class ClientInitializationError(NLQueryError):
    """The search engine client could not be constructed. Fatal at startup."""

    phase = "startup"


class SearchExecutionError(NLQueryError):
    """The search engine call failed or the query document was unusable."""

    phase = "search"


class ConversionError(NLQueryError):
    """Natural-language to query DSL conversion failed."""

    phase = "conversion"


class ModelInvocationError(ConversionError):
    """The remote model call failed at the transport or HTTP level."""


class ModelTimeoutError(ModelInvocationError):
    """The remote model call exceeded its configured timeout."""


class EmptyResponseError(ConversionError):
    """The model response carried no usable content block."""


class InvalidResponseError(ConversionError):
    """The model response could not be parsed, or its text is not valid JSON."""


class ConversionFailedError(ConversionError):
    """Converter output could not be parsed or re-serialized as a JSON object."""
