from __future__ import annotations
from abc import ABC, abstractmethod


class LLMConfigurationError(RuntimeError):
    """Raised when a provider is selected but its credentials/settings are missing."""


class LLMProvider(ABC):
    @abstractmethod
    def generate(self, *, system: str, user: str) -> str:
        """
        Must return the model output as TEXT (JSON is parsed/validated in LLMClient).
        """
        raise NotImplementedError
