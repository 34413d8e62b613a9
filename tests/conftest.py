import importlib
import os

import pytest


class ManualClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_block():
    def _make(number, **overrides):
        block = {
            "number": number,
            "hash": f"0x{number:064x}",
            "difficulty": 1000,
            "gasUsed": 21000,
            "transactions": [],
            "uncles": [],
            "miner": "0xminer",
            "timestamp": number * 15,
        }
        block.update(overrides)
        return block

    return _make


@pytest.fixture
def load_config_module(monkeypatch):
    saved = dict(os.environ)
    import netstats.config as config

    def _loader(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config)

    yield _loader
    # profile defaults are written straight into os.environ
    os.environ.clear()
    os.environ.update(saved)
    importlib.reload(config)
