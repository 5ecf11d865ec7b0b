from abc import ABC, abstractmethod

from formflow.agents.models import FieldMapping
from formflow.filling.models import FilledDocument, TemplateDocument


class BaseDocumentFiller(ABC):
    """Contract for writing field values into an output document."""

    @abstractmethod
    def fill(self, template: TemplateDocument, mappings: list[FieldMapping]) -> FilledDocument:
        """Produce the filled document.

        Raises:
            FillingError: if the template cannot be read or written.
        """
