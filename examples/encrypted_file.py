import logging
import sys
from pathlib import Path

from config_layers import ConfigDecryptError, LayeredConfig

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    # Configuration.plist encrypted beforehand with:
    #   config-layers encrypt Configuration.plist Configuration.enc.plist --password ...
    path = Path(sys.argv[1] if len(sys.argv) > 1 else "Configuration.enc.plist")

    config = LayeredConfig(path, environment="PRODUCTION")
    config.set_decryption_password("change-me")
    try:
        config.load()
    except ConfigDecryptError as exc:
        print("Cannot open configuration:", exc)
        raise SystemExit(1)

    config.set_object(True, "new_onboarding")
    print("new_onboarding:", config.config_value_for_key("new_onboarding"))
    config.teardown()
