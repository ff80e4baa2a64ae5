"""LLM factory for multi-provider support."""

from langchain_core.language_models import BaseChatModel

from food_scan_api.core.config import LLMProvider, Settings, get_settings


def get_llm(
    settings: Settings | None = None,
    *,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> BaseChatModel:
    """
    Get configured LLM instance based on settings.

    Supports OpenAI and Google Gemini providers. Client-side retries are
    disabled; retries are applied by LLMClient's policy.

    Args:
        settings: Application settings (uses default if not provided)
        temperature: Sampling temperature override
        max_tokens: Maximum output tokens

    Returns:
        Configured chat model instance

    Raises:
        ValueError: If provider is not configured or unsupported
    """
    if settings is None:
        settings = get_settings()

    if temperature is None:
        temperature = settings.llm_temperature

    match settings.llm_provider:
        case LLMProvider.GEMINI:
            return _get_gemini(settings, temperature, max_tokens)
        case LLMProvider.OPENAI:
            return _get_openai(settings, temperature, max_tokens)
        case _:
            raise ValueError(f"Unsupported LLM provider: {settings.llm_provider}")


def _get_openai(settings: Settings, temperature: float, max_tokens: int | None) -> BaseChatModel:
    """Get OpenAI chat model."""
    from langchain_openai import ChatOpenAI

    if not settings.openai_api_key:
        raise ValueError(
            "OpenAI API key not configured. "
            "Set OPENAI_API_KEY in your .env file."
        )

    return ChatOpenAI(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        temperature=temperature,
        max_tokens=max_tokens,
        max_retries=0,
    )


def _get_gemini(settings: Settings, temperature: float, max_tokens: int | None) -> BaseChatModel:
    """Get Google Gemini chat model."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    if not settings.google_api_key:
        raise ValueError(
            "Google API key not configured. "
            "Set GOOGLE_API_KEY in your .env file."
        )

    # Accept "models/gemini-2.5-flash" as well as the bare name
    model_name = settings.gemini_model.removeprefix("models/")

    return ChatGoogleGenerativeAI(
        model=model_name,
        google_api_key=settings.google_api_key,
        temperature=temperature,
        max_output_tokens=max_tokens,
        max_retries=0,
    )


def get_llm_info(settings: Settings | None = None) -> dict:
    """
    Get information about the configured LLM.

    Args:
        settings: Application settings

    Returns:
        Dict with provider info
    """
    if settings is None:
        settings = get_settings()

    return {
        "provider": settings.llm_provider.value,
        "model": (
            settings.gemini_model
            if settings.llm_provider == LLMProvider.GEMINI
            else settings.openai_model
        ),
        "configured": settings.is_llm_configured,
        "temperature": settings.llm_temperature,
    }
