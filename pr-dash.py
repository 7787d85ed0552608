#!/usr/bin/env python3
"""
PR Dash
Shows the pull requests assigned to you for review, across Azure DevOps accounts.
"""

import functools
import logging
import os
import sys
from datetime import timedelta

from dotenv import load_dotenv

from prdash.config import Config, ConfigError, config_dir
from prdash.datasource import AzureDevOpsPullRequestSource, DemoPullRequestSource
from prdash.refresh import REFRESH_INTERVAL
from prdash.view import PrDashApp


def configure_logging():
    """Send log records to a file, the terminal belongs to the UI.

    LOG_LEVEL and PR_DASH_LOG_FILE environment variables override the defaults.
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    log_file = os.environ.get('PR_DASH_LOG_FILE') or os.path.join(config_dir(), 'pr-dash.log')
    if os.path.dirname(log_file):
        os.makedirs(os.path.dirname(log_file), exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m/%d/%Y %I:%M:%S %p',
        filename=log_file
    )


def load_config(demo_mode: bool) -> Config:
    """Load the configuration file, or an empty one in demo mode."""
    if demo_mode and not os.path.exists(Config.config_path()):
        return Config(demo_mode=True)

    Config.validate_config_exists()
    return Config.from_config_file()


def refresh_interval_from_env() -> timedelta:
    minutes_env = os.environ.get('PR_DASH_REFRESH_MINUTES')
    if not minutes_env:
        return REFRESH_INTERVAL

    try:
        minutes = float(minutes_env)
    except ValueError:
        logging.warning(f"Invalid PR_DASH_REFRESH_MINUTES value '{minutes_env}', using default: 30")
        return REFRESH_INTERVAL

    if minutes <= 0:
        logging.warning("PR_DASH_REFRESH_MINUTES must be positive, using default: 30")
        return REFRESH_INTERVAL
    return timedelta(minutes=minutes)


def main():
    """Main entry point for the script."""
    # Load environment variables from .env file if it exists
    load_dotenv()
    configure_logging()

    demo_mode = os.environ.get('PR_DASH_DEMO', 'false').lower() in ('true', '1', 'yes')

    try:
        config = load_config(demo_mode)
    except ConfigError as e:
        logging.error(str(e))
        print(str(e), file=sys.stderr)
        sys.exit(1)

    if demo_mode or config.demo_mode:
        logging.info("Starting in demo mode")
        source_factory = functools.partial(DemoPullRequestSource, config.accounts or None, delay=0.3)
    else:
        if not config.accounts:
            logging.error("At least one account is required")
            print(f"No accounts configured in {Config.config_path()}", file=sys.stderr)
            sys.exit(1)
        logging.info(f"Starting with {len(config.accounts)} account(s)")
        source_factory = functools.partial(AzureDevOpsPullRequestSource, config.accounts)

    app = PrDashApp(source_factory, refresh_interval=refresh_interval_from_env())
    app.run()


if __name__ == "__main__":
    main()
