"""Question content: candidate species names and their sprite images.

Both collaborators talk to PokeAPI over HTTP. The static variants serve
fixed data for tests and offline development.
"""

import base64
import logging
import random
import threading
from typing import Dict, List, Optional, Sequence

import requests

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://pokeapi.co/api/v2'


def display_name(slug: str) -> str:
    return ' '.join(part.capitalize() for part in slug.split('-'))


def species_key(name: str) -> str:
    return name.lower().replace(' ', '-')


class SpeciesPicker:
    """Chooses distinct species names, optionally from one generation.

    ``generation`` 0 means every species the API knows about.
    """

    def __init__(self, generation: int = 0, api_url: str = DEFAULT_API_URL,
                 timeout: float = 10.0, session: Optional[requests.Session] = None, rng=None):
        self.generation = max(0, int(generation))
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.rng = rng or random.Random()
        self.names: List[str] = []
        self._lock = threading.Lock()

    def initialize(self) -> None:
        with self._lock:
            if self.names:
                return
            if self.generation:
                url = f"{self.api_url}/generation/{self.generation}"
                res = self.session.get(url, timeout=self.timeout)
                res.raise_for_status()
                entries = res.json().get('pokemon_species', [])
            else:
                url = f"{self.api_url}/pokemon-species"
                res = self.session.get(url, params={'limit': 100000}, timeout=self.timeout)
                res.raise_for_status()
                entries = res.json().get('results', [])
            self.names = sorted({display_name(e['name']) for e in entries if e.get('name')})
            logger.info(f"[picker-init] generation={self.generation} species={len(self.names)}")

    def pick(self, count: int) -> List[str]:
        if not self.names:
            raise RuntimeError('SpeciesPicker.initialize() has not loaded any species')
        return self.rng.sample(self.names, min(count, len(self.names)))


class StaticPicker:
    """Picks from a fixed list of names."""

    def __init__(self, names: Sequence[str], rng=None):
        self.names = list(names)
        self.rng = rng or random.Random()

    def initialize(self) -> None:
        pass

    def pick(self, count: int) -> List[str]:
        return self.rng.sample(self.names, min(count, len(self.names)))


class SpriteService:
    """Resolves a species key to a ``data:`` URL of its default sprite."""

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_data_url(self, key: str) -> str:
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        # Species slugs and pokemon slugs differ for some forms (deoxys vs deoxys-normal)
        res = self.session.get(f"{self.api_url}/pokemon-species/{key}", timeout=self.timeout)
        res.raise_for_status()
        varieties = res.json().get('varieties') or []
        default = next((v for v in varieties if v.get('is_default')), None)
        pokemon_url = default['pokemon']['url'] if default else f"{self.api_url}/pokemon/{key}"

        res = self.session.get(pokemon_url, timeout=self.timeout)
        res.raise_for_status()
        sprite_url = (res.json().get('sprites') or {}).get('front_default')
        if not sprite_url:
            raise LookupError(f"No sprite for '{key}'")

        img = self.session.get(sprite_url, timeout=self.timeout)
        img.raise_for_status()
        mime = img.headers.get('Content-Type', 'image/png').split(';')[0].strip()
        data_url = f"data:{mime};base64,{base64.b64encode(img.content).decode('ascii')}"
        logger.debug(f"[sprite-fetch] key={key} bytes={len(img.content)}")

        with self._lock:
            self._cache[key] = data_url
        return data_url


class StaticSpriteService:
    """Returns a fixed locator per key; records every lookup."""

    def __init__(self, template: str = 'sprite://{key}'):
        self.template = template
        self.lookups: List[str] = []

    def get_data_url(self, key: str) -> str:
        self.lookups.append(key)
        return self.template.format(key=key)
