"""Login flow implementations, registered by name."""

from .base import (
    BaseLoginFlow,
    IdentityConflictError,
    LoginFlowError,
    StateValidationError,
)
from .registry import (
    DEFAULT_LOGINFLOW,
    LoginFlowConfigurationError,
    available_loginflows,
    get_loginflow_class,
    register_loginflow,
)
from .authcode import AuthCodeLoginFlow
from .rocreds import ROCredsLoginFlow

__all__ = [
    "AuthCodeLoginFlow",
    "BaseLoginFlow",
    "DEFAULT_LOGINFLOW",
    "IdentityConflictError",
    "LoginFlowConfigurationError",
    "LoginFlowError",
    "ROCredsLoginFlow",
    "StateValidationError",
    "available_loginflows",
    "get_loginflow_class",
    "register_loginflow",
]
