# src/core/errors.py — v1
"""Error taxonomy for the generation-orchestration layer.

Configuration-time errors (MissingVariable, TemplateNotFound, adaptor
registration/instantiation errors, ModelNotFound) abort a run before any
network call. ProviderError and its subclasses describe a single failed
adaptor call; the orchestrator records them on the item that caused them.
"""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for all orchestration-layer errors."""


class MissingVariable(GenerationError):
    """A required template variable was absent at resolution time."""

    def __init__(self, variable: str, template_id: str):
        self.variable = variable
        self.template_id = template_id
        super().__init__(
            f"Missing required variable '{variable}' for template '{template_id}'"
        )


class TemplateNotFound(GenerationError):
    """No active prompt template exists for a stage/capability pair."""

    def __init__(self, stage: str, capability: str, project_id: str | None = None):
        self.stage = stage
        self.capability = capability
        self.project_id = project_id
        scope = f" (project '{project_id}')" if project_id else ""
        super().__init__(
            f"No active '{capability}' template for stage '{stage}'{scope}"
        )


class DuplicateAdaptor(GenerationError):
    """An adaptor id was registered twice."""

    def __init__(self, adaptor_id: str):
        self.adaptor_id = adaptor_id
        super().__init__(f"Adaptor '{adaptor_id}' is already registered")


class AdaptorInitFailure(GenerationError):
    """Adaptor construction or config validation failed."""

    def __init__(self, adaptor_id: str, model_id: str | None, reason: str):
        self.adaptor_id = adaptor_id
        self.model_id = model_id
        self.reason = reason
        super().__init__(
            f"Failed to initialize adaptor '{adaptor_id}' "
            f"(model '{model_id}'): {reason}"
        )


class AdaptorNotRegistered(AdaptorInitFailure):
    """Requested adaptor id is unknown to the registry."""

    def __init__(self, adaptor_id: str, model_id: str | None = None):
        super().__init__(adaptor_id, model_id, "adaptor is not registered")


class ConfigValidationError(GenerationError):
    """Raised by an adaptor's validate_config()."""


class ModelNotFound(GenerationError):
    """Model id is absent from an adaptor's catalog."""

    def __init__(self, adaptor_id: str, model_id: str):
        self.adaptor_id = adaptor_id
        self.model_id = model_id
        super().__init__(f"Model '{model_id}' not found for adaptor '{adaptor_id}'")


class ProviderError(GenerationError):
    """A single adaptor call failed at the provider or transport level."""

    def __init__(self, adaptor_id: str, operation: str, message: str):
        self.adaptor_id = adaptor_id
        self.operation = operation
        self.message = message
        super().__init__(f"{adaptor_id} {operation} failed: {message}")


class UnsupportedCapability(ProviderError):
    """The adaptor does not implement the requested capability."""

    def __init__(self, adaptor_id: str, operation: str):
        super().__init__(
            adaptor_id, operation, f"'{adaptor_id}' does not support {operation}"
        )


class JobFailed(ProviderError):
    """An async job reached a terminal error reported by the provider."""

    def __init__(self, adaptor_id: str, operation_handle: str, message: str):
        self.operation_handle = operation_handle
        super().__init__(adaptor_id, "job", f"{operation_handle}: {message}")


class JobTimedOut(ProviderError):
    """An async job exceeded its maximum wait budget."""

    def __init__(
        self,
        adaptor_id: str,
        operation_handle: str,
        elapsed_s: float,
        max_wait_s: float,
    ):
        self.operation_handle = operation_handle
        self.elapsed_s = elapsed_s
        self.max_wait_s = max_wait_s
        super().__init__(
            adaptor_id,
            "job",
            f"{operation_handle}: gave up after {elapsed_s:.0f}s "
            f"(max wait {max_wait_s:.0f}s)",
        )


class MalformedOutput(GenerationError):
    """Text-generation output could not be parsed into the expected shape."""

    def __init__(self, message: str, raw_excerpt: str = ""):
        self.raw_excerpt = raw_excerpt
        super().__init__(message)


class StorageError(GenerationError):
    """Artifact upload or result persistence failed."""


class JobStateError(GenerationError):
    """Illegal transition requested on a GenerationJob."""
