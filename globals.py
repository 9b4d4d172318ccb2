# globals.py
# Справочники и константы, общие для обоих профилей бота.

# Категории рецептов: значение на проводе -> подпись кнопки
CATEGORY_LABELS = {
    "main_course": "🍽️ Основное блюдо",
    "appetizer": "🥗 Закуска",
    "dessert": "🍰 Десерт",
    "beverage": "🥤 Напиток",
    "soup": "🍲 Суп",
    "salad": "🥬 Салат",
    "breakfast": "🍳 Завтрак",
    "snack": "🍪 Перекус",
    "other": "📦 Другое",
}

# Группы, которыми LLM помечает отдельные ингредиенты
INGREDIENT_CLASSES = [
    "овощи", "фрукты", "мясо", "рыба", "молочные продукты", "яйца",
    "крупы", "мука и выпечка", "специи", "масла и соусы", "напитки", "другое",
]

# Единицы измерения для разбора строки ингредиента без помощи LLM
UNIT_NORMALIZATION_MAP = {
    "г": "г", "гр": "г", "грамм": "г", "граммов": "г", "g": "g", "gram": "g", "grams": "g",
    "кг": "кг", "kg": "kg",
    "мл": "мл", "ml": "ml",
    "л": "л", "l": "l",
    "шт": "шт", "штук": "шт", "штуки": "шт", "pcs": "pcs",
    "ст": "ст.", "стакан": "стакан", "стакана": "стакан", "cup": "cup", "cups": "cup",
    "ст.л": "ст.л.", "ч.л": "ч.л.", "tbsp": "tbsp", "tsp": "tsp",
    "oz": "oz", "lb": "lb",
}

# Заглушка, которую возвращает подсказка названия, если LLM не справилась
UNTITLED_RECIPE = "Рецепт без названия"
MAX_TITLE_LENGTH = 100

# Фразы "принять предложенное название" (сравниваются в нижнем регистре)
ACCEPT_SUGGESTION_PHRASES = ("use suggestion", "использовать предложение")

# YouTube-профиль
SUPPORTED_LANGUAGES = ("en", "ru")
LANGUAGE_NAMES = {"en": "Английский", "ru": "Русский"}
LANGUAGE_FLAGS = {"en": "🇬🇧", "ru": "🇷🇺"}
MIN_TRANSCRIPT_LENGTH = 50
PORK_REPLACEMENT = "meat"

# LLM
DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_SUPADATA_ENDPOINT = "https://api.supadata.ai/v1"

# Пространства имен ключей в Redis
MANUAL_NAMESPACE = "manual_recipe"
VIDEO_NAMESPACE = "recipe"
