"""Main entry point for Asset Finder: authorize a client from the command line."""

import asyncio
import logging
import sys

from .auth.flow import AuthConfig
from .config import get_config
from .core.service import FinderService
from .exceptions import FinderError


async def authorize() -> int:
    """Authorize the configured client and store its token."""
    config = get_config()
    if not config.client_id:
        print("❌ FINDER_CLIENT_ID is not set. Add it to your environment or .env file.")
        return 2

    service = FinderService(config=config)
    try:
        token = await service.get_token(config.client_id)
        if token is None:
            print("🔗 Complete the authorization in your browser...")
            token = await service.authorize(
                AuthConfig(
                    client_id=config.client_id,
                    domain=config.domain,
                    scopes=config.scopes,
                )
            )
        print(f"✅ Client {token.client_id} is authorized for {token.domain}")
        return 0
    except FinderError as e:
        print(f"❌ Authorization failed ({e.code}): {e.message}")
        return 1
    finally:
        await service.close()


def main() -> None:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        sys.exit(asyncio.run(authorize()))
    except KeyboardInterrupt:
        print("\n👋 Authorization cancelled.")
        sys.exit(130)


if __name__ == "__main__":
    main()
