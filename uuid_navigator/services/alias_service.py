"""
Alias Service - user-maintained alternate names for classes.

One free-text alias per class id. Aliases only feed path-based object
linking, so every mutation notifies subscribers (the processor drops its
caches in response).
"""

import logging
import threading
from typing import Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

AliasListener = Callable[[], None]


class AliasService:
    """In-memory alias overlay with change notification."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._lock = threading.Lock()
        self._aliases: Dict[str, str] = {}
        self._listeners: List[AliasListener] = []

        for class_id, alias in (initial or {}).items():
            if alias and alias.strip():
                self._aliases[self._key(class_id)] = alias.strip()

    @staticmethod
    def _key(class_id: str) -> str:
        return class_id.strip().lower()

    def get_alias(self, class_id: str) -> Optional[str]:
        return self._aliases.get(self._key(class_id))

    def get_all_aliases(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._aliases)

    def set_alias(self, class_id: str, alias: str):
        """
        Set the alias for a class.

        Args:
            class_id: Class id
            alias: New alias; a blank value removes the existing one
        """
        with self._lock:
            if alias.strip():
                self._aliases[self._key(class_id)] = alias.strip()
            else:
                self._aliases.pop(self._key(class_id), None)
        self._fire_changed()

    def remove_alias(self, class_id: str):
        with self._lock:
            self._aliases.pop(self._key(class_id), None)
        self._fire_changed()

    def clear_all_aliases(self):
        with self._lock:
            self._aliases.clear()
        self._fire_changed()

    def on_aliases_changed(self, listener: AliasListener) -> Callable[[], None]:
        """
        Subscribe to alias changes.

        Returns:
            Callable that removes the subscription
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _fire_changed(self):
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.error(f"Alias change listener failed: {e}", exc_info=True)
