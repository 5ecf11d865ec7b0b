from dataclasses import dataclass


@dataclass(frozen=True)
class TemplateDocument:
    """The original form the user uploaded, used as the filling template."""

    file_name: str
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class FilledDocument:
    data: bytes
    format: str
