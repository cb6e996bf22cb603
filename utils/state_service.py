"""
StateService — централизованное хранилище пользовательских состояний для бота.
Позволяет избежать глобальных переменных и облегчает тестирование/расширение.
"""
from typing import Any, Dict, List, Optional
import threading


class StateService:
    def __init__(self):
        # Результаты подбора для каждого пользователя Telegram:
        # {"candidates": [...], "current_index": int}
        self.current_search_results: Dict[int, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def set_search_results(self, user_id: int, candidates: List[Dict[str, Any]]):
        with self._lock:
            self.current_search_results[user_id] = {"candidates": candidates, "current_index": 0}

    def get_search_results(self, user_id: int) -> Dict[str, Any]:
        return self.current_search_results.get(user_id, {})

    def clear_search_results(self, user_id: int):
        with self._lock:
            self.current_search_results.pop(user_id, None)

    def current_candidate(self, user_id: int) -> Optional[Dict[str, Any]]:
        data = self.get_search_results(user_id)
        candidates = data.get("candidates", [])
        index = data.get("current_index", 0)
        if 0 <= index < len(candidates):
            return candidates[index]
        return None

    def advance(self, user_id: int):
        with self._lock:
            data = self.current_search_results.get(user_id)
            if data is not None:
                data["current_index"] += 1
