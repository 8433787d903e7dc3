from typing import Optional

import httpx
from openai import AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from backend.config import Settings


class ChatAssistant:
    """Forwards one user message to the completion API and returns the reply text."""

    def __init__(self, agent: Agent, provider_name: str, model_name: str):
        self.agent = agent
        self.provider_name = provider_name
        self.model_name = model_name

    async def reply(self, message: str) -> str:
        result = await self.agent.run(message)
        return result.output or "No response generated"


def build_assistant(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> Optional[ChatAssistant]:
    """Groq when GROQ_API_KEY is set, OpenAI otherwise; None when neither key exists."""
    api_key = settings.provider_api_key
    if not api_key:
        return None

    # no retries: a failed call is classified and answered with a fallback
    client = AsyncOpenAI(
        api_key=api_key,
        base_url=settings.provider_base_url,
        max_retries=0,
        http_client=http_client,
    )
    model = OpenAIChatModel(settings.llm_model, provider=OpenAIProvider(openai_client=client))
    agent = Agent(
        model,
        system_prompt=settings.system_prompt or (),
        model_settings=ModelSettings(
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        ),
    )
    return ChatAssistant(agent, provider_name=settings.provider_name, model_name=settings.llm_model)
