from config_layers.exceptions import (
    ConfigDecodeError,
    ConfigDecryptError,
    ConfigEncodeError,
    ConfigError,
    ConfigStateError,
    ConfigStorageError,
    ConfigStorageNotFoundError,
)


def test_decode_error_message_and_attrs():
    err = ConfigDecodeError("bad root", locator="overrides.json")
    assert "bad root" in str(err)
    assert "overrides.json" in str(err)
    assert err.locator == "overrides.json"
    assert ConfigDecodeError("bad root").locator is None


def test_storage_error_keeps_locator():
    err = ConfigStorageNotFoundError("missing", "a.json")
    assert err.locator == "a.json"
    assert isinstance(err, ConfigStorageError)


def test_custom_exceptions_are_subclasses():
    for exc in (
        ConfigDecodeError,
        ConfigDecryptError,
        ConfigEncodeError,
        ConfigStateError,
        ConfigStorageError,
    ):
        assert issubclass(exc, ConfigError)
