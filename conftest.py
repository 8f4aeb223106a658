# Make `import edge_proxy` work when running pytest from a plain checkout.
import os
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)


@pytest.fixture
def platforms():
    """A small synthetic registry covering every key family."""
    from edge_proxy.platforms import PlatformRegistry

    return PlatformRegistry(
        {
            "crates": "https://crates.io",
            "jenkins": "https://updates.jenkins.io",
            "homebrew": "https://github.com",
            "homebrew-api": "https://formulae.brew.sh",
            "homebrew-bottles": "https://ghcr.io",
            "doh-cloudflare": "https://cloudflare-dns.com",
            "doh-google": "https://dns.google",
            "cr-docker": "https://registry-1.docker.io",
            "ip-open-ai": "https://api.openai.com",
            "npm": "https://registry.npmjs.org",
            "release-assets.githubusercontent.com": "https://release-assets.githubusercontent.com",
            "raw.githubusercontent.com": "https://raw.githubusercontent.com",
        }
    )
