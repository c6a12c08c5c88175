# recruitbot/services/llm.py
import logging
import datetime
from typing import Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from recruitbot.core.config import settings, LLMConfig
from recruitbot.core.exceptions import RateLimitError
from recruitbot.core.states import ConversationState as S

logger = logging.getLogger("llm_service")

RATE_LIMIT_MARKERS = ("resource_exhausted", "quota", "rate limit", "rate_limit")


def _is_rate_limit(exc: BaseException) -> bool:
    if isinstance(exc, (openai.RateLimitError, RateLimitError)):
        return True
    if getattr(exc, "status_code", None) == 429:
        return True
    text = str(exc).lower()
    return any(marker in text for marker in RATE_LIMIT_MARKERS)


def _log_retry(retry_state):
    exc = retry_state.outcome.exception()
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"⏳ Rate limited ({type(exc).__name__}). Waiting {wait:.0f}s before retry "
        f"{retry_state.attempt_number}"
    )


class TextGenerator:
    """Chat-completions client that produces the bot's reply for one turn."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, config: Optional[LLMConfig] = None):
        self.config = config or settings.llm
        self._http_client = None
        if client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.request_timeout)
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, http_client=self._http_client)
        self.client = client

    def _build_messages(self, system_prompt: str, history: List[Dict], user_message: str) -> List[Dict]:
        now_str = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        messages = [{"role": "system", "content": f"{system_prompt}\n\nCurrent time: {now_str}"}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        # History already ends with the current message when the caller stored it first
        if not history or history[-1].get("content") != user_message or history[-1].get("role") != "user":
            messages.append({"role": "user", "content": user_message})
        return messages

    async def _complete(self, messages: List[Dict]) -> str:
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            max_completion_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        return (response.choices[0].message.content or "").strip()

    async def generate(self, system_prompt: str, history: List[Dict], user_message: str,
                       state: Optional[S] = None) -> str:
        messages = self._build_messages(system_prompt, history, user_message)
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_rate_limit),
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.config.retry_min_seconds,
                min=self.config.retry_min_seconds,
                max=self.config.retry_max_seconds,
            ),
            before_sleep=_log_retry,
            reraise=True,
        )

        logger.info(f"🧬 [Action: llm_request_start] Model: {self.config.model}, state: {state}")
        try:
            async for attempt in retrying:
                with attempt:
                    text = await self._complete(messages)
        except Exception as e:
            if _is_rate_limit(e):
                logger.error(f"❌ Rate limit persisted after {self.config.max_retries} retries")
                raise RateLimitError(str(e)) from e
            logger.error(f"❌ Error generating reply: {type(e).__name__}: {e}")
            raise

        logger.info(f"✅ [Action: llm_response_success] {len(text)} chars")
        return text

    async def aclose(self):
        if self._http_client is not None:
            await self._http_client.aclose()
            logger.info("🔒 [Action: llm_cleanup] HTTP client closed")


MOCK_REPLIES = {
    S.INITIAL: (
        f"¡Hola! 👋 Soy {settings.bot.name}, tu asistente de reclutamiento de {settings.bot.company}.\n\n"
        "Antes de continuar, necesito que aceptes nuestros Términos y Condiciones de tratamiento "
        "de datos personales (Ley N° 29733).\n\n¿Aceptas? Responde SÍ o NO."
    ),
    S.BASIC_DATA: "Gracias. ¿Me compartes el siguiente dato, por favor?",
    S.HARD_FILTERS: "¿Tienes disponibilidad para turnos rotativos y cierres de tienda? Responde SÍ o NO.",
    S.SALARY_EXPECTATION: "¡Gracias! Para mostrarte las tiendas más cercanas, ¿en qué distrito vives? 📍",
    S.LOCATION_INPUT: "Encontré estas tiendas cerca de ti. Responde con el NÚMERO de la tienda que prefieres.",
    S.STORE_LIST: "¡Excelente elección! 🏪 Responde con el NÚMERO del puesto que te interesa.",
    S.VACANCY_SELECTION: "Entendido. ¿Tienes experiencia previa en atención al cliente o cocina?",
    S.SCREENING: "¡Gracias por tus respuestas! 🎉 Elige un horario para tu entrevista respondiendo con el número.",
    S.INTERVIEW_SLOT: "¡Listo! Tu entrevista quedó agendada. Te enviaremos los detalles. 📅",
    S.CONFIRMATION_PENDING: "¡Gracias por tu respuesta! 🙌",
    S.CONFIRMED: "Recuerda llegar 10 minutos antes con tu DNI/CE y CV actualizado. ¡Éxitos!",
    S.COMPLETED: "Tu proceso ya fue registrado. El equipo de selección se comunicará contigo. 🙌",
    S.REJECTED: "Gracias por tu interés. Lamentablemente no cumples con los requisitos actuales. ¡Éxitos!",
    S.ERROR: "Disculpa, tuve un problema técnico. Empecemos de nuevo. 🙏",
}


class MockTextGenerator:
    """Canned replies per state, used when USE_MOCK_AI is set."""

    async def generate(self, system_prompt: str, history: List[Dict], user_message: str,
                       state: Optional[S] = None) -> str:
        state = S(state) if state else S.INITIAL
        if state == S.TERMS:
            lower = (user_message or "").lower()
            if any(w in lower for w in ("sí", "si", "acepto", "ok", "dale")) and "no" not in lower.split():
                return "¡Perfecto! Gracias por aceptar. 😊\n\nPara comenzar, ¿cuál es tu nombre completo?"
            return "Entiendo, gracias por tu tiempo. Si cambias de opinión, aquí estaré. ¡Éxitos! 👋"
        return MOCK_REPLIES[state]

    async def aclose(self):
        pass


def build_text_generator():
    if settings.USE_MOCK_AI or not settings.OPENAI_API_KEY:
        logger.info("🎭 Using mock text generator")
        return MockTextGenerator()
    return TextGenerator()
