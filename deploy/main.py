"""Command line entry point."""

import argparse
import asyncio
import os
import sys
import uuid
from pathlib import Path
from typing import Optional

from common.logging_config import setup_logging
from deploy.config import Config
from deploy.deployer import Deployer, DeployState
from deploy.exceptions import ConfigError

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='workers-assets-deploy',
        description='Upload a directory of static assets and publish a Worker script that serves them.'
    )
    parser.add_argument('--account-id', help='Account identifier (env: CLOUDFLARE_ACCOUNT_ID)')
    parser.add_argument('--assets-dir', help='Directory of assets to upload, not walked recursively (env: ASSETS_DIRECTORY)')
    parser.add_argument('--script-name', help='Worker script name (env: SCRIPT_NAME)')
    parser.add_argument('--main-module', help='Name of the main module part (default: index.mjs)')
    parser.add_argument('--compatibility-date', help='Script compatibility date')
    parser.add_argument('--script-file', help='Module source to publish instead of the built-in fallback script')
    parser.add_argument('--binding-name', help="Assets binding name; pass '' to publish without a binding")
    parser.add_argument('--api-url', help='API base URL (env: CLOUDFLARE_API_URL)')
    parser.add_argument('--timeout', type=float, help='Per-request timeout in seconds')
    parser.add_argument('--max-concurrent-uploads', type=int, help='Bucket uploads in flight at once')
    parser.add_argument('--config', type=Path, help='JSON config file')
    parser.add_argument('--dry-run', action='store_true', help='Build and log the manifest only')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    overrides = {
        'account_id': args.account_id,
        'assets_dir': args.assets_dir,
        'script_name': args.script_name,
        'main_module': args.main_module,
        'compatibility_date': args.compatibility_date,
        'script_file': args.script_file,
        'binding_name': args.binding_name,
        'api_url': args.api_url,
        'timeout': args.timeout,
        'max_concurrent_uploads': args.max_concurrent_uploads,
    }
    return Config(args.config, overrides=overrides)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the deployment command."""
    args = build_parser().parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'INFO')
    correlation_id = uuid.uuid4().hex[:8]
    logger = setup_logging('deploy', log_level=log_level, correlation_id=correlation_id)

    try:
        config = config_from_args(args)
        config.validate(require_token=not args.dry_run)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG

    logger.info(
        f"Deploying {config.get_assets_dir()} to script {config.get_script_name()}"
        + (" (dry run)" if args.dry_run else "")
    )

    try:
        result = asyncio.run(Deployer(config).run(dry_run=args.dry_run))
    except KeyboardInterrupt:
        logger.error("Deployment interrupted")
        return EXIT_INTERRUPTED

    if result.state == DeployState.FAILED:
        return EXIT_FAILED

    if args.dry_run and result.manifest is not None:
        for path, record in result.manifest.items():
            logger.info(f"{path} hash={record.hash} size={record.size}")

    logger.info(f"Deployment finished: {result.state.value}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
