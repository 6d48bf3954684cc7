"""Shared pytest fixtures for all tests."""

import email

import httpx
import pytest

from deploy.api_client import AssetsApiClient
from deploy.config import Config


ACCOUNT_ID = 'acct123'
SCRIPT_NAME = 'my-new-script'
API_TOKEN = 'api-token-secret'


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep deployment env vars from the developer's shell out of tests."""
    for name in (
        'CLOUDFLARE_ACCOUNT_ID',
        'CLOUDFLARE_API_TOKEN',
        'CLOUDFLARE_API_URL',
        'ASSETS_DIRECTORY',
        'SCRIPT_NAME',
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def asset_dir(tmp_path):
    """
    Create an asset directory holding a single file.

    Returns:
        Path to directory containing a.txt with bytes b"hi"
    """
    directory = tmp_path / 'assets'
    directory.mkdir()
    (directory / 'a.txt').write_bytes(b'hi')
    return directory


@pytest.fixture
def multi_asset_dir(tmp_path):
    """
    Create an asset directory with several files of distinct content.

    Returns:
        Path to directory
    """
    directory = tmp_path / 'site'
    directory.mkdir()
    (directory / 'index.html').write_bytes(b'<h1>hello</h1>')
    (directory / 'style.css').write_bytes(b'body { color: red; }')
    (directory / 'app.js').write_bytes(b'console.log("hi");')
    return directory


@pytest.fixture
def make_config():
    """Factory for a Config pointed at a given asset directory."""
    def factory(assets_dir, **overrides):
        values = {
            'account_id': ACCOUNT_ID,
            'script_name': SCRIPT_NAME,
            'assets_dir': str(assets_dir),
        }
        values.update(overrides)
        return Config(overrides=values, api_token=API_TOKEN)

    return factory


@pytest.fixture
def make_client():
    """Factory for an AssetsApiClient whose HTTP session uses a mock transport."""
    def factory(config, handler):
        client = AssetsApiClient(config)
        client.session = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            base_url='http://test'
        )
        return client

    return factory


def _parse_multipart(request: httpx.Request) -> dict:
    raw = (
        b'Content-Type: ' + request.headers['content-type'].encode() + b'\r\n\r\n'
        + request.content
    )
    message = email.message_from_bytes(raw)
    fields = {}
    for part in message.get_payload():
        name = part.get_param('name', header='content-disposition')
        fields[name] = {
            'filename': part.get_filename(),
            'content_type': part.get_content_type(),
            'body': part.get_payload(decode=True),
        }
    return fields


@pytest.fixture
def parse_multipart():
    """Split a multipart request body into {field_name: {filename, content_type, body}}."""
    return _parse_multipart
