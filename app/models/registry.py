"""Generation model registry with auto-discovery."""

import importlib
import inspect
import logging
import pkgutil
from typing import Dict, List, Optional

from app.generations.models import GenerationKind
from app.models.base import GenerationModel, ModelSpec

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Discovers and serves generation models.

    Auto-discovers GenerationModel subclasses in app/models/.
    """

    def __init__(self):
        self._models: Dict[str, GenerationModel] = {}

    def discover(self) -> None:
        """Scan app.models package for GenerationModel subclasses and register them."""
        import app.models as models_pkg

        for importer, modname, ispkg in pkgutil.walk_packages(
            models_pkg.__path__, prefix="app.models."
        ):
            if ispkg:
                continue
            if modname in ("app.models.base", "app.models.registry"):
                continue
            try:
                mod = importlib.import_module(modname)
            except Exception as e:
                logger.warning("Failed to import %s: %s", modname, e)
                continue

            for name, obj in inspect.getmembers(mod, inspect.isclass):
                if (
                    issubclass(obj, GenerationModel)
                    and obj is not GenerationModel
                    and not inspect.isabstract(obj)
                    and obj.__module__ == modname
                ):
                    self.register(obj())

    def register(self, model: GenerationModel) -> None:
        model_id = model.spec().model_id
        if model_id not in self._models:
            logger.info("Registered model: %s (%s)", model_id, model.spec().provider_model)
        self._models[model_id] = model

    def list_models(self, kind: Optional[GenerationKind] = None) -> List[ModelSpec]:
        """List registered models, optionally filtered by kind."""
        specs = [m.spec() for m in self._models.values()]
        if kind:
            specs = [s for s in specs if s.kind == kind]
        return sorted(specs, key=lambda s: s.model_id)

    def get(self, model_id: str) -> Optional[GenerationModel]:
        """Get a model by ID."""
        return self._models.get(model_id)

    def __len__(self) -> int:
        return len(self._models)


# Global registry instance
registry = ModelRegistry()
