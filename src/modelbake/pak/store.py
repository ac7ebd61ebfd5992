"""In-memory pak store: content-keyed model registry.

The store owns every registered :class:`Model` and hands out sequential
:class:`ModelId` values. Registration through :meth:`PakBuf.get_or_register`
is a compare-and-insert: the key lookup, the bake and the insert run under
one lock, so two bakes of the same key cannot both emit a model.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .errors import E_DUP_KEY, PakError
from .model import Model, ModelId

__all__ = ["PakBuf"]


class PakBuf:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids: Dict[str, ModelId] = {}
        self._models: List[Model] = []
        self._keys: List[str] = []

    def __len__(self) -> int:
        return len(self._models)

    def id(self, key: str) -> Optional[ModelId]:
        with self._lock:
            return self._ids.get(key)

    def model(self, model_id: ModelId) -> Model:
        return self._models[int(model_id)]

    def key(self, model_id: ModelId) -> str:
        return self._keys[int(model_id)]

    def push_model(self, key: str, model: Model) -> ModelId:
        """Register a new model under ``key``; the key must be unused."""
        with self._lock:
            if key in self._ids:
                raise PakError(
                    code=E_DUP_KEY,
                    message=f"Key '{key}' is already registered",
                    context={"id": int(self._ids[key])},
                )
            model_id = ModelId(len(self._models))
            self._models.append(model)
            self._keys.append(key)
            self._ids[key] = model_id
            return model_id

    def get_or_register(
        self, key: str, factory: Callable[[], Model]
    ) -> Tuple[ModelId, bool]:
        """Return ``(id, created)``; ``factory`` runs only for unseen keys.

        An exception from ``factory`` leaves the store unchanged.
        """
        with self._lock:
            existing = self._ids.get(key)
            if existing is not None:
                return existing, False
            return self.push_model(key, factory()), True

    def items(self) -> Iterator[Tuple[str, ModelId, Model]]:
        with self._lock:
            entries = list(zip(self._keys, self._models))
        for idx, (key, model) in enumerate(entries):
            yield key, ModelId(idx), model
