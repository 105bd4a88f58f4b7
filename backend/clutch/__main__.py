"""Clutch CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from clutch import __version__
from clutch.config import get_settings
from clutch.database import close_db, init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Clutch Configuration
# Operational parameters for the topic settlement backend.
# Secrets (identity secret, Logfire token) belong in .env, not here.

points:
  starting_grant: 1000

missions:
  default_reward: 10

database:
  url: sqlite+aiosqlite:///data/clutch.db
  echo: false
  max_retries: 3
  retry_backoff_seconds: 0.05

api:
  host: 0.0.0.0
  port: 8000
  allowed_origins:
    - http://localhost:3000
  admin_roles:
    - admin
"""


async def _create_tables() -> None:
    try:
        await init_db()
    finally:
        await close_db()


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory, configuration file and database tables."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        get_settings.cache_clear()
        asyncio.run(_create_tables())

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set IDENTITY__SECRET in .env")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m clutch config' to verify configuration")
        print("4. Run 'python -m clutch serve' to start the API\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Clutch Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}")
        print(f"Environment: {settings.environment}\n")

        print("Points:")
        print(f"  Starting Grant: {settings.points.starting_grant:,}")
        print(f"  Mission Default Reward: {settings.missions.default_reward:,}\n")

        print("Database:")
        print(f"  URL: {settings.database.url}")
        print(f"  Max Retries: {settings.database.max_retries}")
        print(f"  Retry Backoff: {settings.database.retry_backoff_seconds}s\n")

        print("API:")
        print(f"  Listen: {settings.api.host}:{settings.api.port}")
        print(f"  Allowed Origins: {', '.join(settings.api.allowed_origins)}")
        print(f"  Admin Roles: {', '.join(settings.api.admin_roles)}\n")

        print("Secrets:")
        default_secret = settings.identity.secret == "change-me"
        print(f"  Identity Secret: {'✗ Default' if default_secret else '✓ Set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP API."""
    import uvicorn

    try:
        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== Clutch API ===\n")
        print(f"Version: {__version__}")
        print(f"Database: {settings.database.url}")
        print(f"Listening on {settings.api.host}:{settings.api.port}\n")

        uvicorn.run(
            "clutch.api.server:app",
            host=settings.api.host,
            port=settings.api.port,
            reload=args.reload or settings.is_development,
            log_level=settings.log_level.lower(),
        )
        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Clutch: prediction topics, stakes and settlement",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Clutch {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory, configuration and database tables",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Start the HTTP API",
    )
    parser_serve.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_serve.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development only)",
    )
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
