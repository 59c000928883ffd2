"""Provider support for OpenRouter, OpenAI, and Ollama, keyed by client-facing model id."""

from typing import Optional, Union

from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.models.openrouter import OpenRouterModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.providers.openrouter import OpenRouterProvider

from autochat.settings import Settings, load_settings

CHAT_MODEL_ID = "chat-model"
REASONING_MODEL_ID = "chat-model-reasoning"
TITLE_MODEL_ID = "title-model"
ARTIFACT_MODEL_ID = "artifact-model"

LLMModel = Union[OpenAIChatModel, OpenRouterModel]


def resolve_model_name(model_id: str, settings: Settings) -> str:
    """
    Map a client-facing model id to the provider's model name.

    Args:
        model_id: One of the ids above
        settings: Application settings

    Returns:
        Provider model name

    Raises:
        ValueError: If the id is unknown
    """
    names = {
        CHAT_MODEL_ID: settings.chat_model_name,
        REASONING_MODEL_ID: settings.reasoning_model_name,
        TITLE_MODEL_ID: settings.title_model_name,
        ARTIFACT_MODEL_ID: settings.artifact_model_name,
    }
    if model_id not in names:
        raise ValueError(f"Unknown model id: {model_id}")
    return names[model_id]


def get_llm_model(model_id: str = CHAT_MODEL_ID, settings: Optional[Settings] = None) -> LLMModel:
    """
    Get model with proper provider integration.

    Returns the appropriate model based on the configured provider.

    Args:
        model_id: Client-facing model id
        settings: Application settings (loaded from the environment when omitted)

    Returns:
        Configured model with provider-specific integration
    """
    settings = settings or load_settings()
    model_name = resolve_model_name(model_id, settings)
    provider = settings.llm_provider

    if provider == "openrouter":
        return _create_openrouter_model(settings, model_name)
    elif provider == "openai":
        return _create_openai_model(settings, model_name)
    elif provider == "ollama":
        return _create_ollama_model(settings, model_name)
    else:
        raise ValueError(f"Unsupported provider: {provider}")


def _create_openrouter_model(settings: Settings, model_name: str) -> OpenRouterModel:
    """
    Create OpenRouter model with app attribution.

    Args:
        settings: Application settings
        model_name: Provider model name

    Returns:
        Configured OpenRouter model
    """
    kwargs: dict[str, str] = {"api_key": settings.llm_api_key}
    if settings.openrouter_app_url is not None:
        kwargs["app_url"] = settings.openrouter_app_url
    if settings.openrouter_app_title is not None:
        kwargs["app_title"] = settings.openrouter_app_title
    return OpenRouterModel(model_name, provider=OpenRouterProvider(**kwargs))


def _create_openai_model(settings: Settings, model_name: str) -> OpenAIChatModel:
    """Create OpenAI model."""
    return OpenAIChatModel(model_name, provider=OpenAIProvider(api_key=settings.llm_api_key))


def _create_ollama_model(settings: Settings, model_name: str) -> OpenAIChatModel:
    """Create Ollama model via its OpenAI-compatible API."""
    provider = OpenAIProvider(
        base_url=settings.llm_base_url or "http://localhost:11434/v1",
        api_key="ollama",  # Required but unused by Ollama
    )
    return OpenAIChatModel(model_name, provider=provider)
