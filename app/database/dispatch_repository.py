from __future__ import annotations
from abc import ABC, abstractmethod

from app.schemas.outcome import DispatchRecord

class DispatchRepository(ABC):

    @abstractmethod
    async def insert_dispatch(self, record: DispatchRecord) -> None:
        """Append di un record di audit; mai update o delete."""
        raise NotImplementedError
