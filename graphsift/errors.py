"""Exception types raised by the graphsift query engine."""


class GraphsiftError(Exception):
    """Base class for all graphsift errors."""


class InvalidCriteriaError(GraphsiftError, ValueError):
    """A filter value has the wrong shape for its operator.

    Raised by the operator evaluator and the filter-field helpers. The
    filter engine catches it per predicate and treats the predicate as
    not matching, so a single bad criterion never aborts a filter pass.
    """


class NotFoundError(GraphsiftError, KeyError):
    """A named filter set or saved search does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class ConfigurationError(GraphsiftError, ValueError):
    """An externally supplied filter or search payload could not be parsed."""
