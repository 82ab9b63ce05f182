class DispatchError(ValueError):
    """Base class for caller-visible dispatch errors."""


class DispatchValidationError(DispatchError):
    pass


class DispatchNotFoundError(DispatchError):
    pass


class DispatchConflictError(DispatchError):
    pass
