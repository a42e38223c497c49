"""
Флора: the florist chatbot.

FlowerChatbot talks to an OpenAI-compatible chat-completions provider
(DeepSeek by default). Provider failures never reach the visitor: chat falls
back to a canned answer, sentiment falls back to neutral. summarize_chat is
a keyword extractor that needs no provider at all; its output prefills the
callback form after a chat.
"""
import json
import logging
import os
import re
from typing import Iterable, Iterator, List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("uvicorn")

DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY")
DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com")
LLM_MODEL = os.getenv("LLM_MODEL", "deepseek-chat")
LLM_TIMEOUT_SECS = float(os.getenv("LLM_TIMEOUT_SECS", "30"))

NEUTRAL_SENTIMENT = {"rating": 3, "confidence": 0.5}

APOLOGY = "Извините, произошла ошибка при получении ответа. Попробуйте еще раз."

FALLBACK_RESPONSE = """Привет! Меня зовут **Флора** 🌸

К сожалению, сейчас у меня технические неполадки, но я все равно могу помочь! Вот популярные варианты:

### 🌹 Классические розы
- Красные или розовые розы с зеленью
- *Идеально для романтических поводов*

### 🌻 Яркие герберы
- Цветные герберы, хризантемы
- *Отлично поднимает настроение*

### 💐 Смешанный букет
- Сезонные цветы разных видов
- *Универсальный для любого случая*

Расскажите о **поводе** и **получателе** - постараюсь посоветовать что-то подходящее! А для заказа воспользуйтесь формой обратной связи на сайте."""

SYSTEM_PROMPT = """Меня зовут Флора - я ваш персональный консультант-флорист в цветочном магазине "Цветокрафт". 🌸

МОЯ РОЛЬ:
- Помочь вам определиться с выбором цветов и типом букета
- Выяснить повод и предпочтения получателя
- Рассказать о символике и значении цветов
- Предложить подходящие варианты композиций
- После определения с выбором - направить на оформление заказа

ЧТО Я НЕ ДЕЛАЮ:
- НЕ называю точные цены (они могут измениться)
- НЕ указываю адреса и контакты (это делает менеджер)
- НЕ отвечаю на вопросы не связанные с цветами
- НЕ принимаю заказы напрямую
- НЕ обещаю сроки доставки и наличие

СТИЛЬ ОБЩЕНИЯ:
- Дружелюбная и профессиональная
- Задаю уточняющие вопросы о получателе, поводе, предпочтениях
- Предлагаю 2-3 варианта на выбор
- Использую Markdown: **жирный текст**, *курсив*, заголовки ###, списки с -

Говорю только о цветах и букетах. На другие темы отвечаю: "Я Флора, консультант по цветам. Могу помочь только с выбором букета.\""""

RECOMMENDATION_PROMPT = """Создай детальную рекомендацию букета для следующих параметров:
Повод: {occasion}
Бюджет: {budget}
Предпочтения: {preferences}
{colors_line}

Отвечай ТОЛЬКО в формате JSON:
{{
  "bouquetName": "название букета",
  "flowers": ["список цветов"],
  "colors": ["список цветов"],
  "occasion": "повод",
  "priceRange": "примерная цена",
  "description": "подробное описание букета",
  "careInstructions": "краткие советы по уходу"
}}"""

SENTIMENT_PROMPT = (
    "Проанализируй настроение текста. Оцени от 1 до 5 (1=очень негативно, 5=очень позитивно) "
    "и уверенность от 0 до 1. Отвечай JSON: {\"rating\": число, \"confidence\": число}"
)


class ChatbotError(Exception):
    pass


def _strip_code_fence(content: str) -> str:
    content = re.sub(r"^```(?:json)?\s*", "", content.strip())
    return re.sub(r"\s*```$", "", content).strip()


class FlowerChatbot:
    def __init__(self, api_key: Optional[str] = None, base_url: str = DEEPSEEK_BASE_URL, model: str = LLM_MODEL):
        self.model = model
        self.client = None
        if api_key:
            from openai import OpenAI
            self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=LLM_TIMEOUT_SECS)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _complete(self, messages: List[dict], max_tokens: int, temperature: float) -> str:
        if self.client is None:
            raise ChatbotError("AI provider is not configured")
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if not resp.choices or resp.choices[0].message is None:
            raise ChatbotError("Empty response from AI provider")
        return resp.choices[0].message.content or ""

    def get_chat_response(self, messages: Iterable[dict]) -> str:
        all_messages = [{"role": "system", "content": SYSTEM_PROMPT}, *messages]
        try:
            content = self._complete(all_messages, max_tokens=800, temperature=0.7)
        except Exception as e:
            logger.warning("Chat completion failed: %s", e)
            return FALLBACK_RESPONSE
        return content or APOLOGY

    def stream_chat_response(self, messages: Iterable[dict]) -> Iterator[str]:
        """Yield server-sent event lines relaying provider chunks, ending with [DONE]."""
        all_messages = [{"role": "system", "content": SYSTEM_PROMPT}, *messages]
        try:
            if self.client is None:
                raise ChatbotError("AI provider is not configured")
            stream = self.client.chat.completions.create(
                model=self.model,
                messages=all_messages,
                max_tokens=800,
                temperature=0.7,
                stream=True,
            )
            for chunk in stream:
                yield f"data: {chunk.model_dump_json(exclude_none=True)}\n\n"
        except Exception as e:
            logger.warning("Streaming chat completion failed: %s", e)
            yield f"data: {_content_chunk(APOLOGY)}\n\n"
        yield "data: [DONE]\n\n"

    def analyze_sentiment(self, text: str) -> dict:
        try:
            content = self._complete(
                [
                    {"role": "system", "content": SENTIMENT_PROMPT},
                    {"role": "user", "content": text},
                ],
                max_tokens=100,
                temperature=0.3,
            )
            result = json.loads(_strip_code_fence(content))
            rating = float(result.get("rating") or 3)
            confidence = float(result.get("confidence") or 0.5)
        except Exception as e:
            logger.warning("Sentiment analysis failed: %s", e)
            return dict(NEUTRAL_SENTIMENT)
        return {
            "rating": max(1, min(5, int(round(rating)))),
            "confidence": max(0.0, min(1.0, confidence)),
        }

    def generate_flower_recommendation(
        self, occasion: str, budget: str, preferences: str, colors: Optional[List[str]] = None
    ) -> dict:
        colors_line = f"Предпочитаемые цвета: {', '.join(colors)}" if colors else ""
        prompt = RECOMMENDATION_PROMPT.format(
            occasion=occasion, budget=budget, preferences=preferences, colors_line=colors_line
        )
        try:
            content = self._complete(
                [
                    {"role": "system", "content": "Ты профессиональный флорист. Отвечай только в формате JSON."},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=600,
                temperature=0.7,
            )
            result = json.loads(_strip_code_fence(content) or "{}")
        except Exception as e:
            logger.warning("Recommendation failed: %s", e)
            raise ChatbotError("Не удалось создать рекомендацию букета") from e
        return {
            "bouquet_name": result.get("bouquetName") or "Авторский букет",
            "flowers": result.get("flowers") or [],
            "colors": result.get("colors") or [],
            "occasion": result.get("occasion") or occasion,
            "price_range": result.get("priceRange") or "от 2000 руб",
            "description": result.get("description") or "Красивый букет из свежих цветов",
            "care_instructions": result.get("careInstructions") or "Поставьте в чистую воду, обрежьте стебли",
        }


def _content_chunk(content: str) -> str:
    return json.dumps(
        {"object": "chat.completion.chunk", "choices": [{"index": 0, "delta": {"content": content}}]},
        ensure_ascii=False,
    )


flower_chatbot = FlowerChatbot(api_key=DEEPSEEK_API_KEY)


# -----------------
# Chat summary for the callback form
# -----------------
SUMMARY_FALLBACK = "Интересуется букетами. Прошу связаться для консультации и оформления заказа."
SUMMARY_MAX_LENGTH = 200

# (keywords, label); first match wins
RECIPIENTS = [
    (("мам",), "маме"),
    (("бабушк", "бабуля"), "бабушке"),
    (("жене", "супруг"), "жене"),
    (("девушк",), "девушке"),
    (("подруг",), "подруге"),
    (("сестр",), "сестре"),
    (("дочк", "дочер", "дочь"), "дочери"),
    (("коллег",), "коллеге"),
    (("учител",), "учителю"),
    (("начальни", "руководител"), "руководителю"),
]

OCCASIONS = [
    (("день рожден", r"\bдр\b"), "день рождения"),
    (("свадьб",), "свадьба"),
    (("8 марта", "женский день"), "8 марта"),
    (("романтик", "любим"), "романтический повод"),
    (("юбиле",), "юбилей"),
    (("выпускн",), "выпускной"),
]

FLOWERS = [
    ("роз", "розы"),
    ("пион", "пионы"),
    ("тюльпан", "тюльпаны"),
    ("лили", "лилии"),
    ("хризантем", "хризантемы"),
    ("орхиде", "орхидеи"),
    ("гербер", "герберы"),
]

COLORS = [
    ("розов", "розовые"),
    ("красн", "красные"),
    ("бел", "белые"),
    ("желт", "желтые"),
    ("фиолет", "фиолетовые"),
]

URGENCY_WORDS = ("завтра", "срочно", "сегодня")

# "3 000 руб" and "3000 руб" are the same amount
BUDGET_RE = re.compile(r"(\d[\d ]*\d|\d)\s*(тыс\w*|к\b|руб\w*|р\b|₽)")


def _contains(text: str, keyword: str) -> bool:
    if keyword.startswith(r"\b"):
        return re.search(keyword, text) is not None
    return keyword in text


def _first_match(text: str, table) -> Optional[str]:
    for keywords, label in table:
        if any(_contains(text, k) for k in keywords):
            return label
    return None


def _budget(text: str) -> Optional[str]:
    match = BUDGET_RE.search(text)
    if not match:
        return None
    amount = int(match.group(1).replace(" ", ""))
    if match.group(2).startswith(("тыс", "к")):
        amount *= 1000
    return f"до {amount} руб"


def summarize_chat(messages: Iterable[dict]) -> str:
    """Build a one-line request summary from the visitor's side of a chat."""
    text = " ".join(m["content"].lower() for m in messages if m.get("role") == "user")

    # "розов" would otherwise count as a rose
    flower_text = text.replace("розов", "")
    flowers = [label for keyword, label in FLOWERS if keyword in flower_text]
    colors = [label for keyword, label in COLORS if keyword in text]
    recipient = _first_match(text, RECIPIENTS)
    occasion = _first_match(text, OCCASIONS)
    budget = _budget(text)
    urgent = any(word in text for word in URGENCY_WORDS)

    parts = []
    if recipient:
        parts.append(f"Получатель: {recipient}")
    if occasion:
        parts.append(f"Повод: {occasion}")
    if flowers:
        parts.append(f"Интересуется: {', '.join(flowers)}")
    if colors:
        parts.append(f"Цвета: {', '.join(colors)}")
    if budget:
        parts.append(f"Бюджет: {budget}")
    if urgent:
        parts.append("Срочно")

    if not parts:
        return SUMMARY_FALLBACK
    summary = ". ".join(parts) + "."
    if len(summary) > SUMMARY_MAX_LENGTH:
        summary = summary[: SUMMARY_MAX_LENGTH - 3] + "..."
    return summary
