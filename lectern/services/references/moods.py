# lectern/services/references/moods.py
"""
Mood Configuration Loader

Curated verse lists per mood, plus the daily reflection prompts.
Loaded from config/moods.yml; built-in defaults are used if the file
is missing.
"""

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional

import yaml

from .books import BookCatalog
from .reference_parser import ReferenceQuery, parse_reference


CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    'config',
    'moods.yml'
)


@dataclass(frozen=True)
class Mood:
    name: str
    description: str
    refs: tuple

    def queries(self, catalog: BookCatalog = None) -> List[ReferenceQuery]:
        """Parse each reference string into a ReferenceQuery."""
        return [parse_reference(ref, catalog) for ref in self.refs]


@lru_cache(maxsize=1)
def load_config() -> Dict[str, Any]:
    """Load mood config from YAML."""
    if not os.path.exists(CONFIG_PATH):
        return get_default_config()

    with open(CONFIG_PATH, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or get_default_config()


def get_default_config() -> Dict[str, Any]:
    """Return minimal defaults if config file missing."""
    return {
        'version': '1.0',
        'moods': [
            {
                'name': 'peace',
                'description': 'Rest and calm in the storm',
                'refs': ['John 14:27', 'Philippians 4:6', 'Psalms 23:1'],
            },
        ],
        'daily_prompts': ['What word or phrase sticks with you today?'],
    }


def reload_config():
    """Clear cache and reload config."""
    load_config.cache_clear()
    return load_config()


def _key(name: str) -> str:
    return ' '.join(re.sub(r'[^0-9a-z\s]', '', name.lower()).split())


def all_moods() -> List[Mood]:
    """All configured moods, in file order."""
    return [
        Mood(
            name=entry['name'],
            description=entry.get('description', ''),
            refs=tuple(entry.get('refs', [])),
        )
        for entry in load_config().get('moods', [])
    ]


def find_mood(name: str) -> Optional[Mood]:
    """Find a mood by name, ignoring case and punctuation."""
    key = _key(name)
    for mood in all_moods():
        if _key(mood.name) == key:
            return mood
    return None


def daily_prompts() -> List[str]:
    return load_config().get('daily_prompts', [])


def daily_prompt(seed: int) -> str:
    """Pick the reflection prompt for a day seed."""
    prompts = daily_prompts() or get_default_config()["daily_prompts"]
    return prompts[seed % len(prompts)]
