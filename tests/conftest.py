# python
import pytest

from config_layers import ConfigDocument, FernetTransform, InMemoryStorage, LayeredConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("CONFIG_LAYERS_ENV", raising=False)
    monkeypatch.delenv("CONFIG_LAYERS_PASSWORD", raising=False)


@pytest.fixture
def base_tree():
    return {
        "global": {"theme": "light", "timeout": 30, "endpoint": "global.example"},
        "environments": {
            "PROD": {"endpoint": "prod.example", "debug": False},
            "DEV": {"endpoint": "dev.example", "debug": True, "dev_only": "yes"},
        },
    }


@pytest.fixture
def document(base_tree):
    return ConfigDocument.from_tree(base_tree)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def fast_crypto():
    # low iteration count keeps key derivation cheap in tests
    return FernetTransform(iterations=1_000)


@pytest.fixture
def make_config(base_tree, storage, fast_crypto):
    """Build a LayeredConfig sharing one durable storage, like successive process starts."""
    created = []

    def factory(**kwargs):
        kwargs.setdefault("storage", storage)
        kwargs.setdefault("crypto", fast_crypto)
        cfg = LayeredConfig(kwargs.pop("base", base_tree), **kwargs)
        created.append(cfg)
        return cfg

    return factory
