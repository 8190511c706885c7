import time
from functools import lru_cache
from typing import Awaitable, Callable

from groq import AsyncGroq
from src.utils.config import settings
from src.services.errors import InvalidCredentials, classify_completion_error
from src.services.usage_service import log_usage

# Assinatura do serviço de completion usada no pipeline: (prompt, tag) -> texto
CompletionFn = Callable[[str, str], Awaitable[str]]


@lru_cache(maxsize=1)
def get_client() -> AsyncGroq:
    # Criado sob demanda: sem chave configurada não há cliente
    if not settings.GROQ_API_KEY:
        raise InvalidCredentials(detail="GROQ_API_KEY is not configured")
    return AsyncGroq(api_key=settings.GROQ_API_KEY)


async def complete_text(prompt: str, tag: str = "generation") -> str:
    """Envia o prompt para a Groq e devolve o texto cru da resposta."""
    model = settings.COMPLETION_MODEL
    start_time = time.time()
    try:
        completion = await get_client().chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=settings.COMPLETION_TEMPERATURE,
        )
    except Exception as e:
        # O log de consumo guarda o tipo já classificado (ex: "QuotaExceeded")
        err = classify_completion_error(e)
        log_usage(model, {}, time.time() - start_time, tag, error_kind=err.kind)
        if err is e:
            raise
        raise err from e

    if completion.usage:
        usage_dict = {
            "prompt_tokens": completion.usage.prompt_tokens,
            "completion_tokens": completion.usage.completion_tokens,
            "total_tokens": completion.usage.total_tokens
        }
        log_usage(model, usage_dict, time.time() - start_time, tag)

    return completion.choices[0].message.content or ""
