"""
blockops: schema-described operations served over HTTP to block-based
programming clients, with an outbound email queue.
"""

from .builtins import OPERATION_PROVIDERS, build_registry, reload_registry
from .codegen import ClientScriptGenerator, resolve_base_url
from .config import Settings, get_settings, load_env
from .dispatch import Dispatcher, DispatchRequest, build_response
from .errors import (
    AlreadyInProgressError,
    BadRequestError,
    BlockOpsError,
    ErrorCode,
    ErrorKind,
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from .mail import DeliveryProfile, EmailQueue, QueuedEmail, SendResult
from .operations import Capability, Identity, Operation, OperationContext, OperationKind, OperationRegistry
from .runtime import Runtime
from .schema import ArgumentSpec, ArgumentType, FieldError, FieldErrorCode, SchemaEngine, ValidationResult

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Operations
    "Operation",
    "OperationKind",
    "OperationContext",
    "OperationRegistry",
    "Capability",
    "Identity",
    "OPERATION_PROVIDERS",
    "build_registry",
    "reload_registry",
    # Schema
    "ArgumentSpec",
    "ArgumentType",
    "FieldError",
    "FieldErrorCode",
    "SchemaEngine",
    "ValidationResult",
    # Dispatch
    "Dispatcher",
    "DispatchRequest",
    "build_response",
    "Runtime",
    # Client generation
    "ClientScriptGenerator",
    "resolve_base_url",
    # Email
    "DeliveryProfile",
    "EmailQueue",
    "QueuedEmail",
    "SendResult",
    # Config
    "Settings",
    "get_settings",
    "load_env",
    # Errors
    "ErrorCode",
    "ErrorKind",
    "BlockOpsError",
    "UnauthorizedError",
    "BadRequestError",
    "NotFoundError",
    "AlreadyInProgressError",
    "ServiceUnavailableError",
    "InternalError",
]
