import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

# Rules may ship inside a markdown document; the first ```yaml fence wins.
_YAML_FENCE = re.compile(r"^\s*```yaml[^\n]*\n(.*?)^\s*```", re.MULTILINE | re.DOTALL)


def extract_yaml_block(content: str) -> str:
    match = _YAML_FENCE.search(content)
    return match.group(1) if match else content


def parse_rules(content: str) -> Rules:
    """Validate rules text; any YAML or schema problem surfaces as ValueError."""
    try:
        document = yaml.safe_load(extract_yaml_block(content))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML syntax in rules file: {exc}") from exc

    try:
        return Rules.model_validate(document)
    except ValidationError as exc:
        raise ValueError(f"Rules validation failed:\n{exc}") from exc


def load_rules(path: Path) -> Rules:
    if not path.is_file():
        raise FileNotFoundError(f"Rules file not found at: {path}")
    return parse_rules(path.read_text(encoding="utf-8"))
