# src/adaptors/registry.py — v1
"""Adaptor registry — maps adaptor ids to adaptor classes.

One registry is built at startup (see adaptors/builtin.py) and passed to
every component needing adaptor lookup. After the initial registrations it
is only read, so concurrent pipeline runs can share it safely.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from labgen.adaptors.base_adaptor import BaseGenerationAdaptor
from labgen.core.errors import (
    AdaptorInitFailure,
    AdaptorNotRegistered,
    DuplicateAdaptor,
    ModelNotFound,
)
from labgen.core.models import AdaptorDescriptor, ModelInfo

logger = logging.getLogger(__name__)


class AdaptorRegistry:
    """Registry of generation adaptor classes keyed by adaptor id."""

    def __init__(self) -> None:
        self._adaptors: dict[str, type[BaseGenerationAdaptor]] = {}

    @property
    def adaptor_ids(self) -> list[str]:
        """Registered ids, in registration order."""
        return list(self._adaptors)

    def has_adaptor(self, adaptor_id: str) -> bool:
        return adaptor_id in self._adaptors

    def register(self, adaptor_id: str, adaptor_cls: type[BaseGenerationAdaptor]) -> None:
        """Register an adaptor class under ``adaptor_id``.

        Raises:
            DuplicateAdaptor: The id is already registered.
            TypeError: ``adaptor_cls`` is not a BaseGenerationAdaptor subclass.
        """
        if adaptor_id in self._adaptors:
            raise DuplicateAdaptor(adaptor_id)
        if not (isinstance(adaptor_cls, type) and issubclass(adaptor_cls, BaseGenerationAdaptor)):
            raise TypeError(f"{adaptor_cls!r} is not a BaseGenerationAdaptor subclass")
        self._adaptors[adaptor_id] = adaptor_cls
        logger.debug("Registered adaptor: %s (%s)", adaptor_id, adaptor_cls.__name__)

    def get_class(self, adaptor_id: str) -> type[BaseGenerationAdaptor]:
        """Adaptor class for an id.

        Raises:
            AdaptorNotRegistered: Unknown id.
        """
        adaptor_cls = self._adaptors.get(adaptor_id)
        if adaptor_cls is None:
            raise AdaptorNotRegistered(adaptor_id)
        return adaptor_cls

    def instantiate(
        self,
        adaptor_id: str,
        model_id: str | None = None,
        credentials: Mapping[str, Any] | None = None,
        config: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> BaseGenerationAdaptor:
        """Construct an adaptor and validate its config.

        Args:
            adaptor_id: Registered adaptor id.
            model_id: Model to bind (adaptor default when empty).
            credentials: Per-call secrets (api_key, project ids, ...).
            config: Per-call generation config (temperature, max_tokens, ...).
            **kwargs: Extra constructor arguments (clock, http_client).

        Raises:
            AdaptorInitFailure: Unknown id, constructor error or invalid config.
        """
        adaptor_cls = self._adaptors.get(adaptor_id)
        if adaptor_cls is None:
            raise AdaptorNotRegistered(adaptor_id, model_id)

        model = model_id or adaptor_cls.default_model
        if adaptor_cls.model_info(model) is None:
            logger.warning("Model %s is not in the %s catalog", model, adaptor_id)

        try:
            adaptor = adaptor_cls(model, credentials, config, **kwargs)
            adaptor.validate_config(adaptor.config)
        except Exception as e:
            raise AdaptorInitFailure(adaptor_id, model, str(e)) from e

        logger.debug("Instantiated adaptor %s (model %s)", adaptor_id, model)
        return adaptor

    def list_models(self, adaptor_id: str) -> list[ModelInfo]:
        return self.get_class(adaptor_id).list_models()

    def model_info(self, adaptor_id: str, model_id: str) -> ModelInfo:
        """Catalog entry for a model.

        Raises:
            AdaptorNotRegistered: Unknown adaptor id.
            ModelNotFound: The adaptor's catalog has no such model.
        """
        info = self.get_class(adaptor_id).model_info(model_id)
        if info is None:
            raise ModelNotFound(adaptor_id, model_id)
        return info

    def descriptors(self) -> list[AdaptorDescriptor]:
        return [cls.descriptor() for cls in self._adaptors.values()]
