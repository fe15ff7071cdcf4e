from pathlib import Path

from docpipe.intelligence.exceptions import IntelligenceError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

_LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "english": "English",
    "ta": "Tamil",
    "tamil": "Tamil",
}


def load_prompt_template(task: str, prompt_dir: Path | None = None) -> str:
    """Load the instruction template for one task.

    Args:
        task: Template name, e.g. ``summary`` or ``classification``.
        prompt_dir: Directory holding ``<task>.txt`` files.
                    Defaults to the bundled prompts directory.

    Raises:
        IntelligenceError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{task}.txt"
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise IntelligenceError(f"Failed to load prompt template '{task}': {exc}") from exc


def language_directive(language: str) -> str:
    name = _LANGUAGE_NAMES.get(language.strip().lower(), language.strip().title())
    return f"Respond in {name}."
