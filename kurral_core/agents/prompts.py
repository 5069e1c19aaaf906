# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Kurral Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with Kurral Engine. If not, see <https://www.gnu.org/licenses/>.

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

# Loaded locale data, keyed by language code
_PROMPTS: dict = {}

LOCALES_PATH = Path(__file__).resolve().parent / "locales"


def load_prompts(locales_dir: Path | None = None) -> None:
    """
    Load every `<lang>.yml` file from the locales directory.

    Args:
        locales_dir: Optional custom path. Defaults to `locales` next to this file.
    """
    path = Path(locales_dir) if locales_dir else LOCALES_PATH
    if not path.is_dir():
        logger.warning("[Prompts] Locales directory not found at %s", path)
        return

    for f in path.glob("*.yml"):
        lang = f.stem
        with open(f, "r", encoding="utf-8") as yf:
            try:
                data = yaml.safe_load(yf)
            except yaml.YAMLError as e:
                logger.error("[Prompts] YAML parsing failed for %s: %s", f.name, e)
                continue
        if data and isinstance(data, dict) and lang in data:
            _PROMPTS[lang] = data[lang]

    logger.debug("[Prompts] Loaded prompts for languages: %s", list(_PROMPTS.keys()))


def _lookup(lang_data: object, key: str) -> str | None:
    node = lang_data
    for part in key.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node if isinstance(node, str) else None


def get_prompt(key: str, lang: str = "en") -> str:
    """
    Get a prompt by dotted key, falling back to English.

    Raises:
        KeyError: the key exists in no loaded locale (a configuration error,
            so the stage fails fast instead of sending an empty prompt).
    """
    if not _PROMPTS:
        load_prompts()

    template = _lookup(_PROMPTS.get(lang), key)
    if template is None and lang != "en":
        template = _lookup(_PROMPTS.get("en"), key)
    if template is None:
        raise KeyError(f"Prompt key '{key}' not found")
    return template
