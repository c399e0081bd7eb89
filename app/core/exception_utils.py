from typing import Any, Optional, Type

from app.core.exceptions import AppException


def raise_for_status(
    *,
    condition: bool,
    exception: Type[AppException],
    detail: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Raise ``exception`` when ``condition`` holds.

    Extra keyword arguments (``resource_type``, ``resource_id`` ...) are passed
    to the exception constructor.
    """
    if condition:
        if detail is not None:
            kwargs["detail"] = detail
        raise exception(**kwargs)
