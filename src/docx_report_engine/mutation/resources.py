"""Interface to the package layer used when a command needs a new part."""

from abc import ABC, abstractmethod


class ResourceRegistry(ABC):
    """Registers media parts and relationships for one template part.

    Implemented by the package layer; the mutator only needs the relationship
    IDs it returns to reference the new resources from markup.
    """

    @abstractmethod
    def add_image(self, data: bytes, extension: str) -> str:
        """Store an image as a media part and return its relationship ID."""

    @abstractmethod
    def add_hyperlink(self, url: str) -> str:
        """Register an external hyperlink and return its relationship ID."""

    @abstractmethod
    def next_drawing_id(self) -> int:
        """Return a drawing object ID unique within the document."""
