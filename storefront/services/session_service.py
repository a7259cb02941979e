# storefront/services/session_service.py
import time
from datetime import datetime, timezone
from typing import Callable

from storefront.domain.schemas import LoginRequest, SessionOut
from storefront.repos.session_repo import ADMIN_KEY, EMAIL_KEY, TIMESTAMP_KEY
from storefront.services.backend_client import BackendClient, BackendError
from storefront.utils.settings import SESSION_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class SessionService:
    """
    Znaczniki zalogowania dla UI (nie sa granica bezpieczenstwa).
    O tym kto jest adminem decyduje wylacznie odpowiedz serwera.
    """

    def __init__(
        self,
        client: BackendClient,
        repo,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.repo = repo
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def login(self, data: LoginRequest) -> SessionOut:
        self.logout()

        try:
            resp = self.client.login(data)
        except BackendError as e:
            logger.warning(f"Logowanie {data.email} nieudane: {e}")
            self.logout()
            raise

        self.repo.set_markers(data.email, int(self.clock() * 1000), resp.is_admin)
        logger.info(f"Zalogowano {data.email} (user {resp.user_id}, admin={resp.is_admin})")
        return self.current()

    def logout(self) -> None:
        self.client.forget_session()
        self.repo.clear()

    def current(self) -> SessionOut:
        markers = self.repo.get_markers()
        email = markers.get(EMAIL_KEY)
        raw_ts = markers.get(TIMESTAMP_KEY)

        try:
            timestamp_ms = int(raw_ts) if raw_ts is not None else None
        except ValueError:
            timestamp_ms = None

        now_ms = int(self.clock() * 1000)
        if email and timestamp_ms is not None and now_ms - timestamp_ms < self.ttl_seconds * 1000:
            return SessionOut(
                authenticated=True,
                email=email,
                is_admin=markers.get(ADMIN_KEY) == "1",
                logged_in_at=datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc),
            )

        if markers:
            logger.info("Znaczniki sesji wygasly albo sa niepelne, czyszcze")
            self.repo.clear()
        return SessionOut(authenticated=False)
