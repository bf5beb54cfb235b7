"""Compilation errors.

Every inconsistency found while compiling an exercise is fatal for that
document. Errors collect location frames while they propagate outwards so the
single reported message says where the problem is.
"""


class CompileError(ValueError):
    """Base class for all errors that stop an exercise compilation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.locations: list[str] = []

    def at(self, location: str) -> "CompileError":
        """Record an enclosing location and return self for re-raising."""
        self.locations.append(location)
        return self

    def __str__(self) -> str:
        if not self.locations:
            return self.message
        where = ", ".join(f"in {loc}" for loc in self.locations)
        return f"{self.message} ({where})"


class StructuralError(CompileError):
    """Malformed document or expression structure."""


class MacroCycle(StructuralError):
    """A macro expands (directly or indirectly) into itself."""


class BindingConflict(CompileError):
    """A variable is rebound to a different value."""


class UnitMismatch(CompileError):
    """Incompatible units meet in an operation."""


class UnboundReference(CompileError):
    """A variable is used but never bound."""


class StackImbalance(CompileError):
    """An expression leaves the wrong number of values on the stack."""


class EvaluationError(CompileError):
    """Numeric failure while evaluating (division by zero, sqrt domain)."""
