"""Named failures surfaced to callers of the install pipeline."""


class LcscBridgeError(Exception):
    """Base class. `kind` is a short stable label for the failure class."""

    kind = "error"

    def __str__(self) -> str:
        return f"{self.kind}: {super().__str__()}"


class ComponentNotFoundError(LcscBridgeError):
    kind = "component-not-found"


class MissingContextError(LcscBridgeError):
    kind = "missing-context"


class LibraryFormatError(LcscBridgeError):
    kind = "library-format"
