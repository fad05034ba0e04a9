import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from ..config import get_settings
from .bible import NEW_TESTAMENT, OLD_TESTAMENT, parse_verse_ref

logger = logging.getLogger(__name__)


SUGGESTION_PROMPT = """Você é um assistente para um app devocional cristão evangélico brasileiro.
Sugira UM versículo bíblico edificante para o devocional do dia{theme_clause}.
Responda APENAS com a referência no formato "<abreviação> <capítulo>:<versículo>", sem texto adicional.
Use somente estas abreviações (versão NVI): {abbreviations}.
Exemplos: "jo 3:16", "sl 23:1", "1co 13:4"."""

REFLECTION_PROMPT = (
    "Você é um assistente para um app devocional cristão evangélico brasileiro. "
    'Baseado no versículo "{verse_text}" ({verse_ref}), escreva uma reflexão curta (~150 palavras) '
    "e inspiradora com tom pastoral, encorajador e acessível para o dia a dia. "
    "Use linguagem simples e termine com uma nota de esperança ou um chamado à ação leve. "
    "NÃO inclua saudações como 'Bom dia' ou referências diretas à data."
)


def _client() -> Optional[OpenAI]:
    api_key = (get_settings().OPENAI_API_KEY or "").strip()
    if not api_key:
        return None
    return OpenAI(api_key=api_key)


def _complete(client: OpenAI, prompt: str, temperature: float, max_tokens: int) -> str:
    response = client.chat.completions.create(
        model=get_settings().MODEL_NAME,
        messages=[{"role": "user", "content": prompt}],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    if not response.choices:
        return ""
    return (response.choices[0].message.content or "").strip()


def get_verse_suggestion(theme: Optional[str] = None) -> Optional[str]:
    """Ask the model for a verse reference such as ``sl 23:1``.

    Returns None when OpenAI is not configured, the call fails or the answer
    is not a parseable reference.
    """
    client = _client()
    if client is None:
        logger.error("OPENAI_API_KEY missing; cannot suggest a verse")
        return None

    prompt = SUGGESTION_PROMPT.format(
        theme_clause=f' com o tema "{theme}"' if theme else "",
        abbreviations=", ".join(OLD_TESTAMENT + NEW_TESTAMENT),
    )
    try:
        raw = _complete(client, prompt, get_settings().SUGGESTION_TEMPERATURE, 20)
    except OpenAIError:
        logger.error("OpenAI verse suggestion failed", exc_info=True)
        return None

    # Models sometimes wrap the answer in quotes or end it with a period
    suggestion = raw.splitlines()[0].strip().strip("\"'.").strip() if raw else ""
    if not suggestion or parse_verse_ref(suggestion) is None:
        logger.warning("Unusable verse suggestion from model: %r", raw)
        return None

    logger.info("Verse suggested: %s", suggestion)
    return suggestion


def generate_reflection(verse_ref: str, verse_text: str) -> Optional[str]:
    """Write the daily pastoral reflection for a verse."""
    client = _client()
    if client is None:
        logger.error("OPENAI_API_KEY missing; cannot generate reflection")
        return None

    settings = get_settings()
    prompt = REFLECTION_PROMPT.format(verse_text=verse_text, verse_ref=verse_ref)
    try:
        reflection = _complete(
            client, prompt, settings.REFLECTION_TEMPERATURE, settings.REFLECTION_MAX_TOKENS
        )
    except OpenAIError:
        logger.error("OpenAI reflection generation failed for %s", verse_ref, exc_info=True)
        return None

    return reflection or None
