import logging
from typing import Optional

from pydantic import ValidationError

from llm.llm_client import LLMClient
from llm.providers.base import LLMConfigurationError
from llm.schemas import ChatIntent

logger = logging.getLogger(__name__)


class IntentClassifier:
    """Maps a chat message to a search / greeting / unknown intent with search criteria."""

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient()

    def classify(self, message: str) -> ChatIntent:
        if not message or not message.strip():
            return ChatIntent(intent="unknown")
        try:
            data = self.llm.classify_chat_intent(message)
            intent = ChatIntent.model_validate(data)
        except LLMConfigurationError as e:
            logger.warning(f"Intent classification skipped: {e}")
            return ChatIntent(intent="unknown")
        except ValidationError as e:
            logger.warning(f"Unusable intent payload: {e}")
            return ChatIntent(intent="unknown")
        except Exception as e:
            logger.error(f"Intent classification failed: {e}")
            return ChatIntent(intent="unknown")

        if intent.intent == "search" and intent.criteria is None:
            return intent.model_copy(update={"intent": "unknown"})
        return intent
