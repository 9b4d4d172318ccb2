# sessions.py
import logging
from typing import Dict, Optional

from models import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """Сессии диалога ручного ввода: user_id -> Session. Живут, пока жив процесс."""

    def __init__(self):
        self._sessions: Dict[int, Session] = {}

    def get(self, user_id: int) -> Optional[Session]:
        return self._sessions.get(user_id)

    def get_or_create(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            session = Session(user_id=user_id)
            self._sessions[user_id] = session
            logger.debug(f"Создана сессия для пользователя {user_id}")
        return session

    def clear(self, user_id: int) -> None:
        self._sessions.pop(user_id, None)
