"""
Rules file loading.

The rules file is plain YAML. Its location comes from the caller, else the
LINKBIO_RULES environment variable, else ./rules.yaml.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from linkbio.rules.models import Rules

logger = logging.getLogger(__name__)

RULES_PATH_ENV = "LINKBIO_RULES"
DEFAULT_RULES_PATH = Path("rules.yaml")


def default_rules_path() -> Path:
    return Path(os.environ.get(RULES_PATH_ENV) or DEFAULT_RULES_PATH)


def parse_rules(text: str, source: str = "<rules>") -> Rules:
    """
    Parse and validate rules from YAML text.
    Raises ValueError naming `source` if the YAML or the schema is invalid.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"{source}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"{source}: rules must be a YAML mapping")

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"{source}: rules validation failed:\n{e}") from e


def load_rules(path: Path | None = None) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    """
    path = path or default_rules_path()
    if not path.is_file():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    rules = parse_rules(path.read_text(encoding="utf-8"), str(path))
    logger.debug(
        "Loaded rules %s v%s from %s", rules.project.slug, rules.project.rules_version, path
    )
    return rules
