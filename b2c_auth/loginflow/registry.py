"""Named registry of login flow implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Tuple, Type

if TYPE_CHECKING:
    from b2c_auth.loginflow.base import BaseLoginFlow

DEFAULT_LOGINFLOW = "authcode"


class LoginFlowConfigurationError(Exception):
    """Raised when the configured login flow does not name a registered flow."""


_REGISTRY: Dict[str, Type["BaseLoginFlow"]] = {}


def register_loginflow(name: str) -> Callable[[Type["BaseLoginFlow"]], Type["BaseLoginFlow"]]:
    """Class decorator adding a flow to the registry under ``name``."""

    def decorator(cls: Type["BaseLoginFlow"]) -> Type["BaseLoginFlow"]:
        if name in _REGISTRY and _REGISTRY[name] is not cls:
            raise LoginFlowConfigurationError(f"Login flow {name!r} is already registered.")
        cls.name = name
        _REGISTRY[name] = cls
        return cls

    return decorator


def get_loginflow_class(name: str) -> Type["BaseLoginFlow"]:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise LoginFlowConfigurationError(
            f"Unknown login flow {name!r}; expected one of {', '.join(available_loginflows())}."
        ) from None


def available_loginflows() -> Tuple[str, ...]:
    return tuple(sorted(_REGISTRY))


__all__ = [
    "DEFAULT_LOGINFLOW",
    "LoginFlowConfigurationError",
    "available_loginflows",
    "get_loginflow_class",
    "register_loginflow",
]
