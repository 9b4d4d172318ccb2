# ai.py
import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Sequence

from groq import APIConnectionError, APIError, APIStatusError, AsyncGroq

from errors import AIResponseParseError, AIServiceError
from formatting import format_recipe_plain
from globals import *
from models import (Category, ClassificationResult, ExtractedRecipe, Ingredient, Recipe, VideoRecipe,
                    generate_video_recipe_id, utcnow)

logger = logging.getLogger(__name__)

# --- РАЗБОР JSON ИЗ ОТВЕТА LLM ---

FENCED_JSON_PATTERN = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
FIRST_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
PORK_PATTERN = re.compile(r"\bpork|свин", re.IGNORECASE)


def _parse_whole(text: str) -> Any:
    return json.loads(text)


def _parse_fenced(text: str) -> Any:
    match = FENCED_JSON_PATTERN.search(text)
    if not match:
        raise ValueError("в ответе нет блока кода с JSON")
    return json.loads(match.group(1))


def _parse_first_object(text: str) -> Any:
    match = FIRST_OBJECT_PATTERN.search(text)
    if not match:
        raise ValueError("в ответе нет фигурных скобок")
    return json.loads(match.group(0))


# Порядок важен: первая удачная стратегия побеждает
JSON_PARSE_STRATEGIES: Sequence[Callable[[str], Any]] = (_parse_whole, _parse_fenced, _parse_first_object)


def parse_json_response(text: str) -> Dict[str, Any]:
    """Пробует стратегии по очереди. Если все упали - AIResponseParseError с последней ошибкой."""
    last_error: Optional[Exception] = None
    for strategy in JSON_PARSE_STRATEGIES:
        try:
            parsed = strategy(text)
        except ValueError as e:
            logger.debug(f"Стратегия {strategy.__name__} не сработала: {e}")
            last_error = e
            continue
        if isinstance(parsed, dict):
            return parsed
        last_error = ValueError("JSON в ответе не является объектом")

    logger.error(f"Не удалось извлечь JSON из ответа LLM: {text[:500]}")
    raise AIResponseParseError(f"Ответ LLM не является корректным JSON: {last_error}")


def generalize_pork(ingredients: List[str]) -> List[str]:
    """Свинина в рецептах запрещена: такой ингредиент превращается просто в "meat"."""
    return [PORK_REPLACEMENT if PORK_PATTERN.search(item) else item for item in ingredients]


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [str(item).strip() for item in value if str(item).strip()]


def validate_extracted(data: Dict[str, Any]) -> ExtractedRecipe:
    """Проверяет обязательные поля. Неизвестный язык молча становится первым из допустимых."""
    name = data.get("name")
    ingredients = _string_list(data.get("ingredients"))
    instructions = _string_list(data.get("instructions"))
    if not name or ingredients is None or instructions is None:
        logger.error(f"Некорректная структура рецепта от LLM: {data}")
        raise AIResponseParseError("Некорректная структура рецепта: нет обязательных полей")

    language = data.get("detectedLanguage")
    if language not in SUPPORTED_LANGUAGES:
        language = SUPPORTED_LANGUAGES[0]

    return ExtractedRecipe(
        name=str(name).strip(),
        cooking_time=str(data.get("cookingTime") or "").strip(),
        ingredients=ingredients,
        instructions=instructions,
        detected_language=language,
    )


# --- ЛОКАЛЬНЫЙ РАЗБОР ИНГРЕДИЕНТОВ (запасной вариант без LLM) ---

def normalize_unit(unit_str: Optional[str]) -> Optional[str]:
    if not unit_str:
        return None
    processed_unit = unit_str.lower().strip().strip('.')
    return UNIT_NORMALIZATION_MAP.get(processed_unit)


def _is_number(s: str) -> bool:
    try:
        Decimal(s.replace(',', '.'))
        return True
    except InvalidOperation:
        return False


def parse_ingredient_line(line: str) -> Ingredient:
    """'2 стакана муки' -> Ingredient(name='муки', amount='2', unit='стакан')."""
    tokens = line.strip().split()
    if len(tokens) < 2 or not _is_number(tokens[0]):
        return Ingredient(name=line.strip())

    amount = tokens[0]
    unit = normalize_unit(tokens[1])
    rest = tokens[2:] if unit else tokens[1:]
    if not rest:
        return Ingredient(name=line.strip())
    return Ingredient(name=" ".join(rest), amount=amount, unit=unit)


# --- ПРОМПТЫ ---

CLASSIFY_PROMPT = f"""Ты - кулинарный помощник. Тебе дают список ингредиентов, по одному в строке.
Для каждой строки верни объект с полями:
- "name": название продукта без количества
- "amount": количество строкой или null
- "unit": единица измерения или null
- "classification": одна из групп {INGREDIENT_CLASSES}
Также предложи категорию рецепта "suggestedCategory" - одно из значений {list(CATEGORY_LABELS)}.
Сохрани порядок строк и их количество. Ответ - только JSON-объект:
{{"ingredients": [{{"name": "...", "amount": "...", "unit": "...", "classification": "..."}}], "suggestedCategory": "..."}}"""

CATEGORY_PROMPT = f"""Ты - кулинарный помощник. По ингредиентам (и, если есть, названию) определи категорию рецепта.
Допустимые значения: {list(CATEGORY_LABELS)}.
Ответ - только JSON-объект: {{"category": "..."}}"""

TITLE_PROMPT = """Ты - кулинарный помощник. Придумай короткое название блюда на русском языке по списку ингредиентов.
Не длиннее 100 символов, без кавычек. Ответ - только JSON-объект: {"title": "..."}"""

FORMAT_PROMPT = """Ты - кулинарный помощник. Красиво оформи рецепт для сообщения в Telegram на русском языке:
название, категория, список ингредиентов с количеством, способ приготовления (если есть).
Используй эмодзи умеренно. Не добавляй ингредиентов, которых нет в рецепте. Верни только текст сообщения."""

EXTRACT_PROMPT = """Ты - профессиональный кулинарный помощник. Проанализируй транскрипт видео с YouTube и извлеки из него рецепт в формате JSON.

Отвечай только корректным JSON. Без markdown, без блоков кода, без пояснений.

Формат JSON:
{
  "name": "Название рецепта",
  "cookingTime": "Время приготовления (например, '30 minutes', '1 hour')",
  "ingredients": ["ингредиент 1", "ингредиент 2", ...],
  "instructions": ["шаг 1", "шаг 2", ...],
  "detectedLanguage": "en" или "ru"
}

Правила:
- Извлекай только то, что относится к рецепту
- Точно передавай количества и единицы измерения
- Время приготовления пиши понятно
- Если среди ингредиентов есть свинина (pork), замени ее просто на "meat": свинина ЗАПРЕЩЕНА
- Определи язык рецепта: английский ("en") или русский ("ru")
- Если время приготовления не названо, оцени его по сложности рецепта
- Верни только JSON"""

TRANSLATE_PROMPT = """Ты - профессиональный переводчик. Переведи рецепт с английского на русский и верни его в том же формате JSON.

Отвечай только корректным JSON. Без markdown, без блоков кода, без пояснений.

Формат JSON:
{
  "name": "Переведенное название",
  "cookingTime": "Переведенное время",
  "ingredients": ["Переведенный ингредиент 1", ...],
  "instructions": ["Переведенный шаг 1", ...],
  "detectedLanguage": "ru"
}

Правила:
- Сохрани структуру JSON
- Переведи все текстовые поля
- Числа и единицы измерения оставь без изменений
- Используй естественную русскую кулинарную лексику
- Верни только JSON"""


class AIService:
    """Обертка над чат-комплишенами Groq для всех задач бота."""

    def __init__(self, api_key: str, base_url: Optional[str] = None, model: str = DEFAULT_GROQ_MODEL,
                 client: Optional[AsyncGroq] = None):
        self.model = model
        self.client = client or AsyncGroq(api_key=api_key, base_url=base_url, max_retries=0)

    async def chat_completion(self, messages: List[Dict[str, str]], force_json: bool = False,
                              temperature: float = DEFAULT_TEMPERATURE) -> str:
        """Один запрос к LLM. Ошибки провайдера превращаются в AIServiceError с коротким текстом."""
        logger.info(f"Запрос к LLM: модель {self.model}, сообщений {len(messages)}, JSON: {force_json}")
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if force_json:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            completion = await self.client.chat.completions.create(**kwargs)
        except APIStatusError as e:
            logger.error(f"Ошибка LLM API ({e.status_code}): {e.message}")
            if e.status_code == 429 or "insufficient balance" in str(e.message).lower():
                raise AIServiceError("Недостаточно средств на счете LLM-провайдера", e.status_code) from e
            if e.status_code == 401:
                raise AIServiceError("Неверный ключ API LLM-провайдера", e.status_code) from e
            raise AIServiceError(f"LLM API вернул ошибку {e.status_code}", e.status_code) from e
        except APIConnectionError as e:
            logger.error(f"Не удалось связаться с LLM API: {e}")
            raise AIServiceError("Не удалось связаться с LLM API") from e
        except APIError as e:
            logger.error(f"Ошибка LLM API: {e}")
            raise AIServiceError("Ошибка LLM API") from e

        content = completion.choices[0].message.content or ""
        usage = getattr(completion, "usage", None)
        logger.info(f"Ответ LLM получен ({len(content)} символов, токенов: {getattr(usage, 'total_tokens', 'N/A')})")
        return content

    async def _json_completion(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        response = await self.chat_completion(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            force_json=True,
        )
        return parse_json_response(response)

    # --- РУЧНОЙ ВВОД РЕЦЕПТА ---

    async def classify_ingredients(self, lines: List[str]) -> ClassificationResult:
        """Классифицирует ингредиенты. Если LLM не ответила как надо - разбирает строки сама."""
        try:
            data = await self._json_completion(CLASSIFY_PROMPT, "\n".join(lines))
            ingredients = self._ingredients_from_ai(data.get("ingredients"))
            if not ingredients:
                raise AIResponseParseError("LLM вернула пустой список ингредиентов")
            return ClassificationResult(
                ingredients=ingredients,
                suggested_category=Category.parse(data.get("suggestedCategory")),
            )
        except AIServiceError as e:
            logger.warning(f"Классификация ингредиентов через LLM не удалась, разбираю локально: {e}")
            return ClassificationResult(ingredients=[parse_ingredient_line(line) for line in lines])

    @staticmethod
    def _ingredients_from_ai(items: Any) -> List[Ingredient]:
        if not isinstance(items, list):
            return []
        ingredients = []
        for item in items:
            if isinstance(item, str) and item.strip():
                ingredients.append(Ingredient(name=item.strip()))
                continue
            if not isinstance(item, dict) or not str(item.get("name") or "").strip():
                continue
            ingredients.append(Ingredient(
                name=str(item["name"]).strip(),
                amount=str(item["amount"]) if item.get("amount") not in (None, "") else None,
                unit=str(item["unit"]) if item.get("unit") else None,
                classification=str(item["classification"]).lower() if item.get("classification") else None,
            ))
        return ingredients

    async def determine_category(self, ingredients: List[Ingredient], title: Optional[str] = None) -> Category:
        user_prompt = "Ингредиенты:\n" + "\n".join(f"- {ing}" for ing in ingredients)
        if title:
            user_prompt += f"\nНазвание: {title}"
        try:
            data = await self._json_completion(CATEGORY_PROMPT, user_prompt)
        except AIServiceError as e:
            logger.warning(f"Не удалось определить категорию: {e}")
            return Category.OTHER
        return Category.parse(data.get("category")) or Category.OTHER

    async def suggest_title(self, ingredient_names: List[str]) -> str:
        if not ingredient_names:
            return UNTITLED_RECIPE
        try:
            data = await self._json_completion(TITLE_PROMPT, "\n".join(ingredient_names))
        except AIServiceError as e:
            logger.warning(f"Не удалось предложить название: {e}")
            return UNTITLED_RECIPE
        title = str(data.get("title") or "").strip().strip('"«»')
        return title[:MAX_TITLE_LENGTH] if title else UNTITLED_RECIPE

    async def format_recipe(self, recipe: Recipe) -> str:
        recipe_json = json.dumps(recipe.to_dict(), ensure_ascii=False, indent=2)
        try:
            text = await self.chat_completion([
                {"role": "system", "content": FORMAT_PROMPT},
                {"role": "user", "content": recipe_json},
            ])
        except AIServiceError as e:
            logger.warning(f"Не удалось оформить рецепт через LLM, использую шаблон: {e}")
            return format_recipe_plain(recipe)
        return text.strip() or format_recipe_plain(recipe)

    # --- РЕЦЕПТЫ ИЗ YOUTUBE ---

    async def extract_recipe(self, transcript: str) -> ExtractedRecipe:
        data = await self._json_completion(EXTRACT_PROMPT, f"Извлеки рецепт из этого транскрипта:\n\n{transcript}")
        recipe = validate_extracted(data)
        recipe.ingredients = generalize_pork(recipe.ingredients)
        return recipe

    async def translate_to_russian(self, recipe: ExtractedRecipe) -> ExtractedRecipe:
        recipe_json = json.dumps(recipe.to_prompt_dict(), ensure_ascii=False, indent=2)
        data = await self._json_completion(TRANSLATE_PROMPT, f"Переведи этот рецепт на русский:\n\n{recipe_json}")
        translated = validate_extracted(data)
        ingredients = generalize_pork(translated.ingredients)
        # "meat" на месте свинины остается буквальным и после перевода
        if len(ingredients) == len(recipe.ingredients):
            ingredients = [
                PORK_REPLACEMENT if original == PORK_REPLACEMENT else item
                for original, item in zip(recipe.ingredients, ingredients)
            ]
        translated.ingredients = ingredients
        translated.detected_language = "ru"
        return translated

    async def process_recipe(self, transcript: str, youtube_url: str) -> VideoRecipe:
        """Извлечение + перевод (если рецепт не на русском) + сборка итоговой записи."""
        extracted = await self.extract_recipe(transcript)

        final = extracted
        if extracted.detected_language == "en":
            logger.info(f"Рецепт '{extracted.name}' на английском, перевожу")
            final = await self.translate_to_russian(extracted)

        return VideoRecipe(
            id=generate_video_recipe_id(),
            name=final.name,
            cooking_time=final.cooking_time,
            ingredients=final.ingredients,
            instructions=final.instructions,
            original_language=extracted.detected_language,
            youtube_url=youtube_url,
            transcript=transcript,
            created_at=utcnow(),
        )

    async def test_connection(self) -> bool:
        try:
            response = await self.chat_completion([
                {"role": "system", "content": "You are a helpful assistant."},
                {"role": "user", "content": 'Say "Connection successful"'},
            ])
        except AIServiceError:
            return False
        return "Connection successful" in response
