# python
import logging

from config_layers import LayeredConfig

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    base = {
        "global": {"theme": "light", "request_timeout": 5.0},
        "environments": {
            "DEBUG": {"api_url": "https://staging.example.com"},
            "RELEASE": {"api_url": "https://api.example.com"},
        },
    }

    with LayeredConfig(base) as config:
        config.set_env("RELEASE")
        config.set_key_to_protected("api_url")

        # e.g. values fetched from a remote settings endpoint
        config.overwrite_config_with_dictionary(
            {"api_url": "https://evil.example.com", "request_timeout": 10.0}
        )

        print("api_url:", config.config_value_for_key("api_url"))
        print("request_timeout:", config.config_value_for_key("request_timeout"))
        print("Effective:", dict(config.snapshot()))
