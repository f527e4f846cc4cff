"""LLM client helpers for answer synthesis (OpenAI or Ollama)."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from functools import lru_cache

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI
from openai import AuthenticationError

from .config import settings
from .exceptions import ConfigurationError, CredentialError, LLMError
from .observability import record_tokens

CREDENTIAL_MARKERS = ("api_key_invalid", "api key not valid", "invalid_api_key", "incorrect api key", "invalid api key")

SYSTEM_PROMPT = """You are a helpful AI assistant specialized in production data analysis.
Use the provided production data to answer the user's question.

Instructions:
1. Analyze the production data to answer the question precisely.
2. If asked about components, list all available component names from the provided production data.
3. If asked about what data is available, provide a summary of components, date ranges, and key metrics.
4. If asked about specific batch IDs, make sure to match them exactly.
5. For comparative questions (most NG parts, highest production), provide clear rankings.
6. Be specific about dates, batch IDs, and metrics.
7. When discussing defects, use the mapped defect names instead of numeric IDs.
   Say "Ink_Spot defect has 16,661 occurrences", not "defect_id 1 has 16661 occurrences".
8. If you have a final answer, prefix it with "FINAL ANSWER:".

When analyzing NG parts, look at the 'ng_parts' field specifically.
For component summaries, mention the latest date and number of batches for each component
and provide total production numbers if available.
For component inspection records, report decisions per component and per image and group
defects by category (object detection, OCR, dimensional)."""


def is_credential_failure(exc: BaseException) -> bool:
    if isinstance(exc, AuthenticationError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in CREDENTIAL_MARKERS)


class LLMService:
    """Wraps the chat model and the production analysis prompt."""

    def __init__(self, llm: BaseChatModel | None = None) -> None:
        self.llm = llm or self._build_model()
        self.answer_prompt = ChatPromptTemplate.from_messages(
            [
                ("system", SYSTEM_PROMPT),
                (
                    "human",
                    'User Question: "{question}"\n\nProduction Data from MongoDB:\n{data}\n\nCurrent time: {now}',
                ),
            ]
        )

    @staticmethod
    def _build_model() -> BaseChatModel:
        if settings.model.llm_provider == "openai":
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set but llm_provider=openai")
            openai_kwargs = {
                "model": settings.model.llm_model,
                "temperature": settings.model.temperature,
                "max_retries": 2,
                "max_tokens": settings.model.max_output_tokens,
                "api_key": api_key,
            }
            if settings.model.openai_api_base:
                openai_kwargs["base_url"] = settings.model.openai_api_base
            return ChatOpenAI(**openai_kwargs)
        return ChatOllama(
            model=settings.model.llm_model,
            base_url=settings.model.llm_base_url,
            temperature=settings.model.temperature,
            num_ctx=settings.model.max_input_tokens,
        )

    def synthesize(self, question: str, data: str) -> str:
        messages = self.answer_prompt.format_messages(
            question=question,
            data=data,
            now=datetime.now(timezone.utc).isoformat(),
        )
        try:
            response = self.llm.invoke(messages)
        except Exception as exc:
            if is_credential_failure(exc):
                raise CredentialError(str(exc)) from exc
            raise LLMError(str(exc)) from exc
        usage = getattr(response, "usage_metadata", None)
        if usage:
            record_tokens(usage.get("input_tokens", 0), usage.get("output_tokens", 0))
        return self._text(response)

    @staticmethod
    def _text(message: BaseMessage) -> str:
        if isinstance(message.content, str):
            return message.content.strip()
        # LangChain >=0.2 may return a list of parts
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in message.content
        ).strip()


@lru_cache
def get_llm_service() -> LLMService:
    """Return the shared LLM service, built on first use."""

    return LLMService()
