from abc import ABC, abstractmethod
from typing import Any


class BootstrapValidator(ABC):
    @abstractmethod
    def validate(self, subject: Any) -> None:
        ...
