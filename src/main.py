"""oeee.cafe client composition root and entry point."""

import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.core.config_manager import ConfigManager
from src.core.logger import setup_logger
from src.core.i18n_manager import I18nManager
from src.core.session_store import SessionStore
from src.adapters.http_client import TypedHTTPClient
from src.services.api_config import ApiConfig
from src.services.auth_service import AuthService
from src.services.banner_service import BannerService
from src.services.community_service import CommunityService
from src.services.drafts_service import DraftsService
from src.services.notification_service import NotificationService
from src.services.post_service import PostService
from src.services.search_service import SearchService


@dataclass
class AppContainer:
    """Every long-lived object, built once per process."""

    config: ConfigManager
    i18n: I18nManager
    session_store: SessionStore
    api_config: ApiConfig
    client: TypedHTTPClient
    auth: AuthService
    posts: PostService
    notifications: NotificationService
    communities: CommunityService
    search: SearchService
    drafts: DraftsService
    banners: BannerService

    def close(self) -> None:
        self.client.close()
        self.session_store.close()


def create_app(config_path: Optional[Path] = None, log_dir: Optional[Path] = None) -> AppContainer:
    """Build the object graph.

    Startup sequence:
    1. ConfigManager (loads or creates settings.yaml)
    2. Logger (reads log_level and mask_logs from config)
    3. I18nManager (reads locale from config)
    4. SessionStore (restores flag + cookies)
    5. ApiConfig and TypedHTTPClient
    6. Services
    """
    # 1. ConfigManager
    config = ConfigManager(config_path)

    # 2. Logger
    logger = setup_logger(
        log_level=config.get("app.log_level", "INFO"),
        mask_logs=config.get("security.mask_logs", True),
        log_dir=log_dir,
    )
    logger.info("oeee.cafe client starting...")

    # 3. I18nManager
    i18n = I18nManager()
    locale = config.get("app.locale", "en_US")
    i18n.load_locale(locale)

    # 4. SessionStore
    session_store = SessionStore(config.resolve_path("session.db_path", "data/session.db"))

    # 5. HTTP
    api_config = ApiConfig(config, session_store)
    client = TypedHTTPClient(
        api_config,
        session_store,
        request_timeout=config.get("http.request_timeout", 30),
        resource_timeout=config.get("http.resource_timeout", 60),
    )
    logger.info(f"API endpoint: {api_config.base_url}{api_config.api_prefix}")

    # 6. Services
    posts_limit = config.get("pagination.posts_limit", 18)
    return AppContainer(
        config=config,
        i18n=i18n,
        session_store=session_store,
        api_config=api_config,
        client=client,
        auth=AuthService(client, session_store),
        posts=PostService(
            client,
            posts_limit=posts_limit,
            comments_limit=config.get("pagination.comments_limit", 100),
            followings_limit=config.get("pagination.followings_limit", 50),
        ),
        notifications=NotificationService(
            client, notifications_limit=config.get("pagination.notifications_limit", 50),
        ),
        communities=CommunityService(
            client,
            posts_limit=posts_limit,
            directory_limit=config.get("pagination.communities_limit", 20),
        ),
        search=SearchService(client),
        drafts=DraftsService(client),
        banners=BannerService(client),
    )


def main():
    app = create_app()
    logger = logging.getLogger("oeeecafe")
    try:
        if app.auth.restore_session():
            logger.info(f"Restored session for {app.auth.current_user.login_name}")
        else:
            logger.info("Not logged in")
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
