from typing import NoReturn

from fastapi import HTTPException

from roadside.services.errors import (
    DispatchConflictError,
    DispatchError,
    DispatchNotFoundError,
)


def raise_dispatch_http_error(exc: DispatchError) -> NoReturn:
    if isinstance(exc, DispatchNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DispatchConflictError):
        raise HTTPException(status_code=409, detail=str(exc))
    raise HTTPException(status_code=400, detail=str(exc))
