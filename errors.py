from typing import Optional


class BotError(Exception):
    pass


class InvalidURLError(BotError):
    pass


class TranscriptError(BotError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TranscriptTooShortError(TranscriptError):
    pass


class AIServiceError(BotError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AIResponseParseError(AIServiceError):
    pass


class RecipeNotFoundError(BotError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id
