import base64
import random

import pytest
import requests

from pixelquiz.services.pokeapi import (
    SpeciesPicker,
    SpriteService,
    StaticPicker,
    display_name,
    species_key,
)

API = 'http://pokeapi.test/api/v2'


class FakeResponse:
    def __init__(self, payload=None, content=b'', status=200, headers=None):
        self._payload = payload
        self.content = content
        self.status_code = status
        self.headers = headers or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        return self.routes.get(url, FakeResponse(status=404))


def test_names_and_keys():
    assert display_name('mr-mime') == 'Mr Mime'
    assert display_name('pidgey') == 'Pidgey'
    assert species_key('Mr Mime') == 'mr-mime'
    assert species_key(display_name('nidoran-f')) == 'nidoran-f'


def test_picker_loads_generation_once():
    session = FakeSession({
        f'{API}/generation/1': FakeResponse({'pokemon_species': [
            {'name': 'zubat'}, {'name': 'pidgey'}, {'name': 'mr-mime'}, {'name': 'rattata'},
        ]}),
    })
    picker = SpeciesPicker(1, api_url=API + '/', session=session, rng=random.Random(5))
    picker.initialize()
    picker.initialize()
    assert len(session.calls) == 1
    assert picker.names == ['Mr Mime', 'Pidgey', 'Rattata', 'Zubat']
    picked = picker.pick(3)
    assert len(picked) == len(set(picked)) == 3
    assert set(picked) <= set(picker.names)
    assert len(picker.pick(10)) == 4


def test_picker_all_species():
    session = FakeSession({
        f'{API}/pokemon-species': FakeResponse({'results': [{'name': 'mew'}, {'name': 'eevee'}]}),
    })
    picker = SpeciesPicker(0, api_url=API, session=session)
    picker.initialize()
    assert session.calls == [(f'{API}/pokemon-species', {'limit': 100000})]
    assert picker.names == ['Eevee', 'Mew']


def test_picker_requires_initialize():
    with pytest.raises(RuntimeError):
        SpeciesPicker(1, api_url=API, session=FakeSession({})).pick(4)


def test_picker_propagates_http_errors():
    picker = SpeciesPicker(9, api_url=API, session=FakeSession({}))
    with pytest.raises(requests.HTTPError):
        picker.initialize()


def test_static_picker_samples_distinct_names():
    picker = StaticPicker(['a', 'b', 'c'], rng=random.Random(1))
    picker.initialize()
    assert sorted(picker.pick(3)) == ['a', 'b', 'c']


def test_sprite_service_builds_and_caches_data_url():
    png = b'\x89PNG fake'
    session = FakeSession({
        f'{API}/pokemon-species/deoxys': FakeResponse({'varieties': [
            {'is_default': False, 'pokemon': {'url': f'{API}/pokemon/deoxys-attack'}},
            {'is_default': True, 'pokemon': {'url': f'{API}/pokemon/deoxys-normal'}},
        ]}),
        f'{API}/pokemon/deoxys-normal': FakeResponse({'sprites': {'front_default': 'http://img.test/386.png'}}),
        'http://img.test/386.png': FakeResponse(content=png, headers={'Content-Type': 'image/png; charset=binary'}),
    })
    sprites = SpriteService(api_url=API, session=session)
    url = sprites.get_data_url('deoxys')
    assert url == 'data:image/png;base64,' + base64.b64encode(png).decode('ascii')
    assert sprites.get_data_url('deoxys') == url
    assert len(session.calls) == 3


def test_sprite_service_without_sprite():
    session = FakeSession({
        f'{API}/pokemon-species/missingno': FakeResponse({'varieties': []}),
        f'{API}/pokemon/missingno': FakeResponse({'sprites': {'front_default': None}}),
    })
    with pytest.raises(LookupError):
        SpriteService(api_url=API, session=session).get_data_url('missingno')
