"""Abstract base class for schema extractors."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from .names import DbName


class BaseExtractor(ABC):
    """Abstract base class for resolving one kind of schema object.

    Extractors never talk to the driver directly; they go through a catalog
    reader, which keeps them testable against an in-memory catalog.
    """

    def __init__(self, reader: Any, db_name: DbName):
        self.reader = reader
        self.db_name = db_name
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def extract(self) -> list[Any]:
        """Extract all objects of this type."""
        pass
