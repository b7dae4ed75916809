import json
from pathlib import Path

from labworker.extraction.exceptions import PromptLoadError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template by file name.

    Args:
        name: File name inside the prompt directory, e.g. "extraction_prompt.txt".
        prompt_dir: Directory to read from. Defaults to the bundled prompts/.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptLoadError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(name: str, prompt_dir: Path | None = None) -> dict[str, object]:
    """Load and decode a JSON schema by file name.

    Raises:
        PromptLoadError: if the file cannot be read or is not a JSON object.
    """
    raw = load_prompt(name, prompt_dir)
    try:
        schema = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PromptLoadError(f"Invalid JSON schema {name}: {exc}") from exc
    if not isinstance(schema, dict):
        raise PromptLoadError(f"JSON schema {name} must be an object")
    return schema
