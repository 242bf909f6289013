"""Kubernetes operator reconciling NovaAPI resources.

Importing the package registers the kopf handlers. Environment overrides for
`novaapi.types.settings` can be kept in a dotenv file named by `ENV_FILE`
(default `.env`), which is loaded before the settings module is imported.
"""
import os
from dotenv import find_dotenv, load_dotenv

_env_file = find_dotenv(filename=os.environ.get("ENV_FILE", ".env"), usecwd=True)
if _env_file:
    print(f"Loading environment variables from {_env_file}")
    load_dotenv(dotenv_path=_env_file)

from novaapi.handlers import novaapi, probes  # noqa: E402

__all__ = [
    "novaapi",
    "probes",
]

__version__ = "0.1.0"
