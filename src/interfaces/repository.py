from abc import ABC, abstractmethod
from typing import Any, List, Optional


class IRepository(ABC):
    @abstractmethod
    async def create(self, obj_in: Any) -> Any:
        ...

    @abstractmethod
    async def get(self, **kwargs: Any) -> Optional[Any]:
        ...

    @abstractmethod
    async def update(self, obj_current: Any, obj_in: Any) -> Any:
        ...

    @abstractmethod
    async def all(self, page: int = 1, limit: int = 100, sort_field: str = "created_at",
                  sort_order: str = "desc") -> List[Any]:
        ...
