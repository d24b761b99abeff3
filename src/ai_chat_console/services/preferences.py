"""Last-selected model, remembered across sessions."""

import structlog

from ..domain.models import DEFAULT_MODEL
from ..repositories.local import KeyValueStorage

logger = structlog.get_logger()

SELECTED_MODEL_KEY = "selectedModel"


class ModelPreference:
    """Global model choice kept in key/value storage, independent of sessions."""

    def __init__(self, storage: KeyValueStorage, default: str = DEFAULT_MODEL) -> None:
        self.storage = storage
        self.default = default
        self.current = default

    def load(self) -> str:
        stored = self.storage.get_item(SELECTED_MODEL_KEY)
        self.current = stored or self.default
        return self.current

    def save(self, model: str) -> None:
        if not model:
            raise ValueError("model must be a non-empty string")
        self.storage.set_item(SELECTED_MODEL_KEY, model)
        if model != self.current:
            logger.info("model_selected", model=model, previous=self.current)
        self.current = model
