from dataclasses import dataclass


@dataclass(frozen=True)
class SourceFile:
    """An uploaded file as received from the client."""

    file_name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class IngestedDocument:
    """Plain-text view of a document handed to the stage agents."""

    name: str
    content: str
    type: str
    size: int
    degraded: bool = False
