"""Tests for the command line entry point."""

import json

import pytest

from deploy.main import EXIT_CONFIG, EXIT_FAILED, EXIT_OK, build_parser, main


def test_dry_run_succeeds_without_token(asset_dir):
    exit_code = main([
        '--dry-run',
        '--account-id', 'acct',
        '--script-name', 'script',
        '--assets-dir', str(asset_dir),
    ])

    assert exit_code == EXIT_OK


def test_missing_configuration(asset_dir):
    exit_code = main(['--assets-dir', str(asset_dir)])

    assert exit_code == EXIT_CONFIG


def test_bad_config_file(tmp_path):
    exit_code = main(['--config', str(tmp_path / 'missing.json')])

    assert exit_code == EXIT_CONFIG


def test_failed_run(tmp_path, monkeypatch):
    monkeypatch.setenv('CLOUDFLARE_API_TOKEN', 'token')

    exit_code = main([
        '--account-id', 'acct',
        '--script-name', 'script',
        '--assets-dir', str(tmp_path / 'missing'),
    ])

    assert exit_code == EXIT_FAILED


def test_parser_rejects_bad_numbers():
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(['--timeout', 'soon'])

    assert exc_info.value.code == 2


def test_non_string_setting_in_config_file(tmp_path, asset_dir, monkeypatch):
    monkeypatch.setenv('CLOUDFLARE_API_TOKEN', 'token')
    config_path = tmp_path / 'deploy.json'
    config_path.write_text(json.dumps({
        'account_id': 'acct',
        'script_name': 'script',
        'assets_dir': str(asset_dir),
        'compatibility_date': 20220311,
    }))

    exit_code = main(['--config', str(config_path)])

    assert exit_code == EXIT_CONFIG
