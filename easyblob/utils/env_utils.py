import os

SETTING_PREFIX = "EASYBLOB_"


def get_setting(name: str, secrets_dir: str = "/run/secrets") -> str | None:
    """
    Look up `EASYBLOB_<NAME>`, preferring a docker secret file over the environment.
    """
    env_name = f"{SETTING_PREFIX}{name}".upper()

    secrets_path = os.path.join(secrets_dir, env_name.lower())
    if os.path.exists(secrets_path):
        with open(secrets_path) as f:
            return f.read().strip()
    return os.environ.get(env_name)
