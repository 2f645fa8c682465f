import os
import sys

import pytest

# Make the package importable without installing it.
project_root = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), '../../'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

PROXY_ENV_VARS = ('HTTP_PROXY', 'HTTPS_PROXY', 'ALL_PROXY', 'http_proxy', 'https_proxy', 'all_proxy')


@pytest.fixture(autouse=True)
def loopback_without_proxy(monkeypatch):
    """Keep loopback requests made by the tests away from any configured proxy."""
    for name in PROXY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('NO_PROXY', 'localhost,127.0.0.1')
    monkeypatch.setenv('no_proxy', 'localhost,127.0.0.1')
