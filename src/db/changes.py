"""
Feed de mudanças em processo.

Faz o papel do listener em tempo real do banco de documentos: toda escrita
confirmada numa coleção avisa os observadores daquela coleção, e cada
observador refaz a própria consulta para receber o snapshot completo.
"""
import logging
from collections import defaultdict
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ChangeFeed:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def watch(self, collection: str, listener: Listener) -> Callable[[], None]:
        """Registra o listener e devolve a função que cancela a inscrição."""
        self._listeners[collection].append(listener)

        def unsubscribe():
            try:
                self._listeners[collection].remove(listener)
            except ValueError:
                pass  # já cancelado

        return unsubscribe

    def notify(self, collection: str) -> None:
        # Copia a lista: um listener pode se desinscrever durante a entrega
        for listener in list(self._listeners[collection]):
            try:
                listener()
            except Exception:
                logger.exception("Listener de '%s' falhou", collection)

    def listener_count(self, collection: str) -> int:
        return len(self._listeners[collection])


feed = ChangeFeed()

DECKS = "decks"
FLASHCARDS = "flashcards"
SESSIONS = "study_sessions"
