import logging

from groq import AsyncGroq

from app.config import GROQ_KEY, COMPLETION_BASE_URL, COMPLETION_TIMEOUT, PRIMARY_MODEL, FALLBACK_MODEL
from app.errors import CompletionUnavailable

logger = logging.getLogger(__name__)


def create_llm(api_key=GROQ_KEY, base_url=COMPLETION_BASE_URL, timeout=COMPLETION_TIMEOUT):
    # retries are handled by the model fallback, not by the client
    return AsyncGroq(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)


class CompletionClient:
    """
    Chat completions against a primary model, falling back once to a more
    widely available model when the primary call fails for any reason.
    """

    def __init__(self, llm, primary_model=PRIMARY_MODEL, fallback_model=FALLBACK_MODEL):
        self.llm = llm
        self.primary_model = primary_model
        self.fallback_model = fallback_model

    async def _create(self, model, messages, temperature):
        result = await self.llm.chat.completions.create(
            messages=messages,
            model=model,
            temperature=temperature,
        )
        return result.choices[0].message.content if result.choices else None

    async def complete(self, messages, temperature, default=""):
        try:
            answer = await self._create(self.primary_model, messages, temperature)
        except Exception as e:
            logger.warning("Completion with %s failed, retrying with %s: %s", self.primary_model, self.fallback_model, e)
            try:
                answer = await self._create(self.fallback_model, messages, temperature)
            except Exception as fallback_error:
                logger.exception("Fallback completion with %s failed", self.fallback_model)
                raise CompletionUnavailable(str(fallback_error)) from fallback_error
        return answer or default
