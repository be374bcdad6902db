from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class SearchProvider(ABC):
    """Resolves videos to raw metadata dicts.

    Results carry the keys ``id``, ``title``, ``thumbnail``, ``duration``
    (seconds), ``url`` and ``author``. ``None`` means no match.
    """

    @abstractmethod
    def search(self, query: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def lookup(self, video_id: str) -> Optional[Dict[str, Any]]:
        ...
