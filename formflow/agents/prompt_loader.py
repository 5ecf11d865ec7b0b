from functools import lru_cache
from pathlib import Path

from formflow.agents.exceptions import PromptLoadError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


@lru_cache(maxsize=None)
def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled prompt template by name.

    Args:
        name: Template file name without the ``.txt`` suffix.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Returns:
        The raw template string with ``str.format`` placeholders.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptLoadError(f"Failed to load prompt template '{name}': {exc}") from exc
