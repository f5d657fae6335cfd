"""YAML prompt templates shared by the pipeline stages."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Tuple

import yaml
from loguru import logger

from medgraph.utils.config import DEFAULT_PROMPTS_PATH


class PromptLibrary:
    """Loads ``system`` / ``user_template`` pairs keyed by stage name."""

    def __init__(self, prompts_path: str | Path = DEFAULT_PROMPTS_PATH) -> None:
        self.prompts_path = Path(prompts_path)
        self.prompts = self._load_prompts(self.prompts_path)
        logger.debug(f"Loaded {len(self.prompts)} prompt templates from {self.prompts_path}")

    def _load_prompts(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"Prompt template not found: {path}")
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Prompt template root must be a mapping/dict: {path}")
        return data

    def render(self, key: str, context: Dict[str, Any]) -> Tuple[str, str]:
        """Render the ``(system, user)`` pair for ``key``.

        Both parts are ``str.format`` templates filled from ``context``.
        """
        if key not in self.prompts:
            raise KeyError(f"Prompt key not found in template: {key}")

        prompt = self.prompts.get(key) or {}
        system_template = str(prompt.get("system", "")).strip()
        user_template = str(prompt.get("user_template", ""))

        try:
            system = system_template.format(**context)
            user = user_template.format(**context)
        except KeyError as exc:
            missing = exc.args[0]
            raise KeyError(f"Missing placeholder '{missing}' in prompt context for '{key}'")
        return system, user.strip()
