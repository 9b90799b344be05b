"""
System prompt registry backed by ``system_prompts.json``.
"""

import json
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from app.core.config import settings
from app.utils.exceptions import ConfigurationError

PROMPTS_FILE = Path(__file__).with_name("system_prompts.json")


class PromptRegistry:
    """Resolves prompt keys to system prompt text."""

    def __init__(self, prompts: Optional[Dict[str, str]] = None, default_key: Optional[str] = None):
        self.prompts = prompts if prompts is not None else load_prompts()
        self.default_key = default_key or settings.DEFAULT_PROMPT_TYPE

    def resolve(self, prompt_key: Optional[str] = None) -> str:
        """
        Return the prompt for ``prompt_key``, falling back to the default key.

        Raises:
            ConfigurationError: neither key resolves
        """
        if prompt_key and prompt_key in self.prompts:
            return self.prompts[prompt_key]
        if prompt_key and prompt_key != self.default_key:
            logger.warning(f"Unknown prompt type '{prompt_key}', using '{self.default_key}'")
        if self.default_key in self.prompts:
            return self.prompts[self.default_key]
        raise ConfigurationError(
            f"Default system prompt '{self.default_key}' is not configured",
            details={"prompt_key": prompt_key},
        )


def load_prompts(path: Path = PROMPTS_FILE) -> Dict[str, str]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return {key: entry["content"] for key, entry in data.get("systemPrompts", {}).items() if entry.get("content")}
