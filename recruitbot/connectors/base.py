# recruitbot/connectors/base.py
from abc import ABC, abstractmethod
from typing import Any, Dict


class BaseConnector(ABC):
    """
    Common interface of the outbound messaging channels (WhatsApp, ...).
    The reminder job only talks to this interface.
    """

    @abstractmethod
    async def send_message(self, phone: str, text: str) -> Dict[str, Any]:
        """Delivers a text message to the given phone number."""
        pass

    @abstractmethod
    async def close(self):
        """Releases network resources."""
        pass
